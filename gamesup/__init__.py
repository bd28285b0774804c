"""Games Up shop server"""
