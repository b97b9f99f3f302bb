"""
Database connection management for the API.
"""
import logging
import sqlite3
from contextlib import contextmanager

from adsync.database import db_connect, db_init

from .config import config

logger = logging.getLogger(__name__)


@contextmanager
def get_db_connection():
    """Get an initialized store connection with proper error handling."""
    conn = None
    try:
        if not config.DB_PATH:
            raise ValueError("Database path not configured")

        conn = db_connect(config.DB_PATH)
        db_init(conn)
        yield conn
    except sqlite3.Error as e:
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn is not None:
            conn.close()
