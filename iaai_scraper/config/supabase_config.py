# supabase_config.py
"""
Supabase connection settings for the IAAI listing scraper
"""

import os
from dotenv import load_dotenv
from supabase import create_client, Client

load_dotenv()

SUPABASE_CONFIG = {
    "url": os.environ.get("SUPABASE_URL"),
    "key": os.environ.get("SUPABASE_ANON_KEY"),
    "service_role_key": os.environ.get("SUPABASE_SERVICE_ROLE_KEY"),
}

DATABASE_CONFIG = {
    "vehicles_table": os.environ.get("IAAI_VEHICLES_TABLE", "cars"),
    "conflict_column": "stock",
    "recent_limit": 5,
}


def get_supabase_client(use_service_role: bool = False) -> Client:
    """Create a Supabase client from the environment settings"""
    key = SUPABASE_CONFIG["service_role_key"] if use_service_role else SUPABASE_CONFIG["key"]
    if not SUPABASE_CONFIG["url"] or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY (or SUPABASE_SERVICE_ROLE_KEY) must be set")
    return create_client(SUPABASE_CONFIG["url"], key)


__all__ = [
    "SUPABASE_CONFIG",
    "DATABASE_CONFIG",
    "get_supabase_client",
]
