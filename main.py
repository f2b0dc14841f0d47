#!/usr/bin/env python3
"""
Marketing Preferences
Lets a Shopify customer view and change their email marketing
subscription from a single page.

Configuration comes from the environment or a .env file:
    SHOPIFY_SHOP             e.g. my-store.myshopify.com
    SHOPIFY_ADMIN_API_TOKEN  Admin API access token
    PORT                     listening port (default 3000)
    SHOPIFY_API_VERSION      Admin API version (default 2024-10)
    SHOPIFY_TIMEOUT          upstream request timeout in seconds (default 30)
    LOG_LEVEL                default INFO
"""

import logging
import os

from dotenv import load_dotenv

from api.handlers import create_flask_app
from config import load_settings

logger = logging.getLogger("marketing_preferences")


def main():
    """Load configuration and run the web server."""
    load_dotenv()
    level_name = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not isinstance(level, int):
        logger.error("Invalid configuration: LOG_LEVEL must be a logging level name, got %r", level_name)
        return 1

    try:
        settings = load_settings()
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    missing = settings.missing()
    if missing:
        logger.warning("Missing %s; customer lookups and updates will fail", ", ".join(missing))

    app = create_flask_app(settings)
    logger.info("🚀 Server running on port %s", settings.port)
    app.run(host="0.0.0.0", port=settings.port)
    return 0


if __name__ == "__main__":
    exit(main())
