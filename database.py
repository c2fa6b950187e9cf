"""
Database access

Thin wrapper around a pymongo client. `db` is None when DATABASE_URL or
DATABASE_NAME is not configured, so the API can still start and report it.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel
from pymongo import MongoClient

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client: Optional[MongoClient] = None
db = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document with created_at/updated_at stamps and return its id as a string."""
    if db is None:
        raise RuntimeError("Database not configured")
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = datetime.now(timezone.utc)
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)



def ensure_indexes(target_db=None):
    """Unique sign-up emails, and expiry of revoked tokens once the token itself has expired."""
    target_db = target_db if target_db is not None else db
    if target_db is None:
        raise RuntimeError("Database not configured")
    target_db["user"].create_index("email", unique=True)
    target_db["revoked_token"].create_index("expires_at", expireAfterSeconds=0)
