"""
Database configuration for WasteWise
Uses Supabase as the store of record
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from supabase import create_client, Client

from wastewise import config

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages Supabase database connections"""

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None,
                 database_url: Optional[str] = None):
        self.url = url or config.SUPABASE_URL
        # Service role key bypasses RLS policies for backend operations
        self.key = key or config.SUPABASE_SERVICE_KEY or config.SUPABASE_KEY
        self.database_url = database_url or config.DATABASE_URL
        self.supabase_client: Optional[Client] = None
        self.engine = None

        if not self.url or not self.key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

        self._init_supabase()

    def _init_supabase(self):
        """Initialize Supabase client and SQLAlchemy engine"""
        try:
            self.supabase_client = create_client(self.url, self.key)
            logger.info("Connected to Supabase client")

            if self.database_url:
                self.engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=config.SQL_DEBUG
                )
                logger.info("Connected to Supabase PostgreSQL database")
            else:
                logger.warning("DATABASE_URL not provided, using Supabase client only")

        except Exception as e:
            logger.error("Failed to connect to Supabase: %s", e)
            raise RuntimeError(f"Database connection failed: {e}")

    def get_supabase_client(self) -> Client:
        """Get Supabase client"""
        if not self.supabase_client:
            raise RuntimeError("Supabase client not initialized")
        return self.supabase_client

    def create_tables(self):
        """Create all tables declared in wastewise.models"""
        if not self.engine:
            raise RuntimeError("DATABASE_URL required to create tables")

        from wastewise.models import Base
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created/verified")


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Return the process-wide manager, creating it on first use"""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def get_supabase() -> Client:
    """Get Supabase client instance"""
    return get_db_manager().get_supabase_client()


def get_engine():
    """Get SQLAlchemy engine"""
    return get_db_manager().engine
