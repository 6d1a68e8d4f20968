#!/usr/bin/env python3
"""
Simple runner script for the collector.
This script ensures the correct Python path is set and runs the app.
"""

import sys
import logging
from pathlib import Path

# Add the current directory to Python path
current_dir = Path(__file__).parent
sys.path.insert(0, str(current_dir))

from config_manager import ConfigManager
from ingest_service import setup_logging, stop_logging
from app.main import create_app

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    config_manager = ConfigManager()
    app_config = config_manager.get_app_config()

    setup_logging(debug=app_config.debug)
    logger.info(f"Starting collector from {current_dir}")

    try:
        app = create_app(config_manager)
        app.run(
            host=app_config.host,
            port=app_config.port,
            debug=app_config.debug
        )
    finally:
        stop_logging()
