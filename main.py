"""
Pipedrive Daily Digest: Entry Point
======================================

Run: python main.py
"""

import os

from dotenv import load_dotenv

load_dotenv()

from scripts.lib.config import load_settings
from scripts.lib.logger import setup_logger

logger = setup_logger("pipedrive-daily-digest")

if __name__ == "__main__":
    import uvicorn

    settings = load_settings()

    logger.info("=" * 60)
    logger.info("  PIPEDRIVE DAILY DIGEST")
    logger.info("=" * 60)
    logger.info(f"  Server      : http://0.0.0.0:{settings.port}")
    logger.info(f"  API Docs    : http://localhost:{settings.port}/docs")
    logger.info(f"  Schedule    : {settings.send_hour:02d}:{settings.send_minute:02d} {settings.timezone}")
    logger.info(f"  Scheduler   : {'on' if settings.enable_scheduler else 'off'}")
    logger.info(f"  Debug       : {os.getenv('DEBUG', 'false')}")
    logger.info("=" * 60)

    uvicorn.run(
        "dashboard.api.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=os.getenv("DEBUG", "false").lower() == "true",
    )
