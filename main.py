# main.py
import logging
import uvicorn
from products_api.app import create_app
from products_api.config import Config, setup_logging


def main():
    config = Config()
    setup_logging(config)
    logger = logging.getLogger(__name__)

    try:
        app = create_app(config)
        logger.info(f"Starting API on {config.HOST}:{config.PORT}...")
        uvicorn.run(app, host=config.HOST, port=config.PORT, log_config=None)
    except Exception as e:
        logger.error(f"Error starting API: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
