from datetime import datetime
from typing import Any, Dict, List

from bson import ObjectId
from fastapi import APIRouter, Body, Depends
from pymongo.database import Database

from ..db import OUTFITS, get_db, parse_object_id, serialize
from ..errors import NotFound, ValidationFailed
from ..items import snapshot
from ..security import get_owner_id

router = APIRouter(prefix="/outfits", tags=["outfits"])


def _snapshots(items: Any) -> List[Dict[str, str]]:
    if not isinstance(items, list) or not items or not all(isinstance(it, dict) for it in items):
        raise ValidationFailed("Invalid outfit data")
    return [snapshot(it) for it in items]


def _name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed("Invalid outfit data")
    return value.strip()


def _owned(outfit_id: str, owner: ObjectId) -> Dict[str, Any]:
    oid = parse_object_id(outfit_id)
    if oid is None:
        raise NotFound("Outfit not found")
    return {"_id": oid, "userId": owner}


@router.get("")
def list_outfits(owner: ObjectId = Depends(get_owner_id), db: Database = Depends(get_db)):
    return serialize(list(db[OUTFITS].find({"userId": owner})))


@router.post("")
def create_outfit(
    payload: dict = Body(...),  # { "name": ..., "items": [{_id, title, category, image_url}, ...] }
    owner: ObjectId = Depends(get_owner_id),
    db: Database = Depends(get_db),
):
    doc = {
        "userId": owner,
        "name": _name(payload.get("name")),
        "items": _snapshots(payload.get("items")),
        "created_at": datetime.utcnow(),
    }
    result = db[OUTFITS].insert_one(doc)
    return serialize(db[OUTFITS].find_one({"_id": result.inserted_id}))


@router.put("/{outfit_id}")
def update_outfit(
    outfit_id: str,
    payload: dict = Body(...),
    owner: ObjectId = Depends(get_owner_id),
    db: Database = Depends(get_db),
):
    query = _owned(outfit_id, owner)
    updates: Dict[str, Any] = {"updated_at": datetime.utcnow()}
    if "name" in payload:
        updates["name"] = _name(payload["name"])
    if "items" in payload:
        updates["items"] = _snapshots(payload["items"])

    result = db[OUTFITS].update_one(query, {"$set": updates})
    if result.matched_count == 0:
        raise NotFound("Outfit not found")
    return {"acknowledged": True, "matchedCount": result.matched_count, "modifiedCount": result.modified_count}


@router.delete("/{outfit_id}")
def delete_outfit(outfit_id: str, owner: ObjectId = Depends(get_owner_id), db: Database = Depends(get_db)):
    result = db[OUTFITS].delete_one(_owned(outfit_id, owner))
    if result.deleted_count == 0:
        raise NotFound("Outfit not found")
    return {"acknowledged": True, "deletedCount": result.deleted_count}
