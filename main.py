# main.py
import asyncio
import logging
from gamesup.config import Config, setup_logging
from gamesup.server import ShopServer

async def main():
    # Setup logging
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        Config.validate()
        server = ShopServer()
        logger.info("Starting server...")
        await server.start()
    except Exception as e:
        logger.error(f"Error starting server: {e}", exc_info=True)
        raise

if __name__ == "__main__":
    asyncio.run(main())
