import logging
from datetime import date, datetime
from math import isfinite
from typing import Any, Optional

import certifi
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from .config import Settings

logger = logging.getLogger(__name__)

USERS = "users"
ITEMS = "items"
OUTFITS = "outfits"


def connect(settings: Settings) -> MongoClient:
    """Open the process-wide client. pymongo pools connections internally."""
    kwargs = {}
    if settings.mongo_tls:
        kwargs.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(settings.mongo_uri, **kwargs)


def ensure_indexes(db: Database) -> None:
    db[USERS].create_index([("email", ASCENDING)], unique=True)
    db[ITEMS].create_index([("userId", ASCENDING)])
    db[OUTFITS].create_index([("userId", ASCENDING)])


def get_db(request: Request) -> Database:
    return request.app.state.db


def parse_object_id(value: Optional[str]) -> Optional[ObjectId]:
    """Return an ObjectId, or None when ``value`` isn't one."""
    if not value:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize(value: Any) -> Any:
    """Make a Mongo document JSON friendly (ObjectId -> str, datetime -> ISO)."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    # no NaN/inf floats on the wire
    if isinstance(value, float) and not isfinite(value):
        return None
    return value
