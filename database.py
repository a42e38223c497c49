"""
Database connection and helpers (MongoDB via pymongo)

The connection is configured from the environment:
- DATABASE_URL: MongoDB connection string
- DATABASE_NAME: database to use

`db` stays None when either variable is missing, so the API can still boot
and report its status on /test.
"""
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import MongoClient

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

db = None
if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]


def _require_db():
    if db is None:
        raise RuntimeError("Database not available. Check DATABASE_URL and DATABASE_NAME.")
    return db


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document, stamping created_at/updated_at. Returns the new id as a string."""
    database = _require_db()
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = datetime.now(timezone.utc)
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
) -> List[dict]:
    database = _require_db()
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes():
    database = _require_db()
    database["section"].create_index("name", unique=True)
    database["customer"].create_index("phone", unique=True)
    database["sitesetting"].create_index("key", unique=True)
    database["user"].create_index("username", unique=True)
    # one open (pending/contacted) request per phone; "completed" sorts below both
    database["callbackrequest"].create_index(
        "phone",
        unique=True,
        partialFilterExpression={"status": {"$gt": "completed"}},
    )
