# db.py
"""
Database Handler for the IAAI listing scraper using Supabase
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from iaai_scraper.config.supabase_config import (
    SUPABASE_CONFIG,
    DATABASE_CONFIG,
    get_supabase_client,
)
from iaai_scraper.core.errors import (
    ConstraintViolationError,
    FatalRunError,
    TransientDatabaseError,
)
from iaai_scraper.core.models import VehicleRecord

CREATED = "created"
UPDATED = "updated"

# PostgreSQL SQLSTATE classes 22 (data exception) and 23 (integrity constraint)
CONSTRAINT_SQLSTATE_CLASSES = ("22", "23")


class DatabaseHandler:
    """Persistence sink: upserts vehicles keyed by stock number"""

    def __init__(self, use_service_role: bool = False, client: Optional[Client] = None):
        self.logger = logging.getLogger(__name__)
        self.use_service_role = use_service_role
        self.supabase_client = client
        self.table_name = DATABASE_CONFIG["vehicles_table"]
        self.conflict_column = DATABASE_CONFIG["conflict_column"]
        self.connected = client is not None

    def connect(self):
        """Connect to Supabase and verify the vehicles table is reachable"""
        try:
            if self.supabase_client is None:
                self.supabase_client = get_supabase_client(self.use_service_role)
            self.supabase_client.table(self.table_name).select(self.conflict_column).limit(1).execute()
            self.connected = True
            self.logger.info("✅ Successfully connected to Supabase database")
        except Exception as e:
            self.connected = False
            self.logger.error(f"❌ Failed to connect to Supabase: {e}")
            raise FatalRunError(f"Database unreachable: {e}") from e

    def test_connection(self) -> bool:
        """Return True when the vehicles table answers a trivial query"""
        try:
            self.connect()
            return True
        except FatalRunError:
            return False

    def show_connection_info(self):
        url = SUPABASE_CONFIG["url"] or "<unset>"
        key_kind = "service role" if self.use_service_role else "anon"
        self.logger.info(f"🔗 Supabase URL: {url} (key: {key_kind}, table: {self.table_name})")

    def close(self):
        """Close database connection"""
        if self.connected:
            self.supabase_client = None
            self.connected = False
            self.logger.info("Database connection closed")

    # Vehicle operations
    def upsert_vehicle(self, record: VehicleRecord) -> str:
        """
        Insert or update one vehicle keyed by stock number.

        Returns "created" or "updated". Raises ConstraintViolationError when
        the record cannot be stored as-is and TransientDatabaseError for
        connection or server failures.
        """
        if record is None or not record.stock:
            raise ConstraintViolationError("Vehicle record has no stock number")
        if not self.supabase_client:
            raise TransientDatabaseError("Database not connected", stock=record.stock)

        try:
            existing = self.supabase_client.table(self.table_name).select(self.conflict_column).eq(
                self.conflict_column, record.stock
            ).limit(1).execute()
            exists = bool(existing.data)

            now = datetime.now(timezone.utc).isoformat()
            row = record.to_db_record()
            row["updated_at"] = now
            if not exists:
                row["created_at"] = now

            self.supabase_client.table(self.table_name).upsert(
                row,
                on_conflict=self.conflict_column
            ).execute()
        except APIError as e:
            code = str(getattr(e, "code", "") or "")
            if code[:2] in CONSTRAINT_SQLSTATE_CLASSES:
                raise ConstraintViolationError(f"Constraint violation ({code}): {e}", stock=record.stock) from e
            raise TransientDatabaseError(f"Database error ({code or 'unknown'}): {e}", stock=record.stock) from e
        except httpx.HTTPError as e:
            raise TransientDatabaseError(f"Connection error: {e}", stock=record.stock) from e

        return UPDATED if exists else CREATED

    def get_stats(self) -> Dict[str, Any]:
        """Total vehicles in the table and the most recently created ones"""
        try:
            count_result = self.supabase_client.table(self.table_name).select(
                self.conflict_column, count="exact"
            ).limit(1).execute()
            recent_result = self.supabase_client.table(self.table_name).select("*").order(
                "created_at", desc=True
            ).limit(DATABASE_CONFIG["recent_limit"]).execute()
            return {
                "total_cars": count_result.count or 0,
                "recent_cars": recent_result.data or [],
            }
        except Exception as e:
            self.logger.error(f"Error getting stats: {e}")
            return {"total_cars": 0, "recent_cars": []}


# Export main classes and functions
__all__ = [
    "DatabaseHandler",
    "CREATED",
    "UPDATED",
]
