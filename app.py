#!/usr/bin/env python3
"""
Coursebook - course pages and course API (Entry Point)
"""

import os

from coursebook.api.app import create_app
from coursebook.core.logging import get_logger
from coursebook.models.database import DatabaseManager

logger = get_logger("startup")

app = create_app()


def initialize_database():
    if os.environ.get("INIT_DB_ON_STARTUP", "true").lower() != "true":
        logger.info("Startup schema initialization disabled via INIT_DB_ON_STARTUP")
        return

    db = DatabaseManager()
    db.connect()
    try:
        db.initialize_schema()
        logger.info("Database schema ready")
    finally:
        db.close()


if __name__ == "__main__":
    initialize_database()
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=True)
