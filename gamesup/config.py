# gamesup/config.py
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent

class Config:
    """Configuration settings for the shop server"""

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "2"))
    DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))

    # HTTP settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3001"))
    CORS_ORIGIN: str = os.getenv("CORS_ORIGIN", "*")
    FUNCTION_NAME: str = os.getenv("VITE_SUPABASE_FUNCTION_NAME", "make-server-f6f1fb51")
    BASE_PATH: str = f"/functions/v1/{FUNCTION_NAME}"

    # Auth settings
    SECRET_KEY: str = os.getenv("JWT_SECRET", "dev_secret")
    TOKEN_TTL_HOURS: int = int(os.getenv("TOKEN_TTL_HOURS", "24"))

    # Checkout settings
    CHECKOUT_LOCK_TIMEOUT_MS: int = int(os.getenv("CHECKOUT_LOCK_TIMEOUT_MS", "5000"))
    CHECKOUT_TIMEOUT_SECONDS: float = float(os.getenv("CHECKOUT_TIMEOUT_SECONDS", "15"))

    # Payment settings (PayTabs)
    PAYTABS_PROFILE_ID: str = os.getenv("PAYTABS_PROFILE_ID", "")
    PAYTABS_SERVER_KEY: str = os.getenv("PAYTABS_SERVER_KEY", "")
    PAYTABS_REGION: str = os.getenv("PAYTABS_REGION", "SAU")
    PAYTABS_CURRENCY: str = os.getenv("PAYTABS_CURRENCY", "SAR")

    # Shipping settings (OTO)
    OTO_REFRESH_TOKEN: str = os.getenv("OTO_REFRESH_TOKEN", "")
    OTO_ENV: str = os.getenv("OTO_ENV", "test")

    # Other settings
    TIMEZONE: str = os.getenv("TZ", "Asia/Riyadh")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Paths
    LOG_DIR = BASE_DIR / "logs"

    # Ensure directories exist
    LOG_DIR.mkdir(exist_ok=True)

    @classmethod
    def validate(cls):
        """Fail fast on settings the server cannot start without"""
        if not cls.DATABASE_URL:
            raise ValueError("No DATABASE_URL set in environment")

def setup_logging():
    """Configure logging settings"""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    log_file = Config.LOG_DIR / "server.log"

    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL),
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
