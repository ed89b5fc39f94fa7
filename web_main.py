"""
Rebate Finder web API entry point.
Usage: python web_main.py
"""

import logging

from config import LOGGING_LEVEL, LOGGING_FORMAT, LOG_FILE, WEB_HOST, WEB_PORT
from ui.web.app import create_app


if __name__ == '__main__':
    logging.basicConfig(
        level=LOGGING_LEVEL,
        format=LOGGING_FORMAT,
        handlers=[logging.FileHandler(LOG_FILE), logging.StreamHandler()]
    )
    app = create_app()
    app.run(host=WEB_HOST, port=WEB_PORT, debug=False)
