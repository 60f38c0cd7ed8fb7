import logging
from typing import List

from bson import ObjectId
from fastapi import APIRouter, Body, Depends
from pymongo.database import Database

from ..ai import CompletionClient, get_completion_client
from ..analytics import count_by, underused
from ..db import ITEMS, get_db, parse_object_id
from ..errors import NotFound, ValidationFailed
from ..items import matching_filter, snapshot
from ..security import get_owner_id
from ..suggestions import (
    combinations_prompt,
    outfit_prompt,
    pick_top_and_bottom,
    restyle_prompt,
    split_combinations,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["suggestions"])


# ------------------ OUTFIT SUGGESTIONS ------------------
@router.post("/suggestions/outfit")
def suggest_outfit(
    payload: dict = Body(default={}),  # { "occasion": ..., "purpose": ... }
    owner: ObjectId = Depends(get_owner_id),
    db: Database = Depends(get_db),
    ai: CompletionClient = Depends(get_completion_client),
):
    """Ask the stylist for one top and one bottom among items fit for the occasion."""
    occasion = payload.get("occasion") or "everyday"
    purpose = payload.get("purpose") or "casual"
    if not isinstance(occasion, str) or not isinstance(purpose, str):
        raise ValidationFailed("Occasion and purpose must be strings")

    items = list(db[ITEMS].find(matching_filter(owner, purpose=purpose, occasion=occasion)))
    items = [it for it in items if it.get("image_url")]
    if not items:
        raise NotFound("No items match the selected criteria")

    prompt = outfit_prompt(occasion, purpose, [it["image_url"] for it in items])
    text = ai.complete(prompt)
    logger.debug("AI response: %s", text)

    top, bottom = pick_top_and_bottom(text, items)
    return {"top": top, "bottom": bottom, "response": text}


@router.post("/suggestions/combinations")
def suggest_combinations(
    payload: dict = Body(...),  # { "item_ids": [...] }
    owner: ObjectId = Depends(get_owner_id),
    db: Database = Depends(get_db),
    ai: CompletionClient = Depends(get_completion_client),
):
    raw_ids = payload.get("item_ids") or []
    if not isinstance(raw_ids, list):
        raise ValidationFailed("item_ids must be a list")
    ids: List[ObjectId] = [oid for oid in map(parse_object_id, raw_ids) if oid]
    found = {it["_id"]: it for it in db[ITEMS].find({"userId": owner, "_id": {"$in": ids}})}
    items = [found[oid] for oid in ids if oid in found and found[oid].get("image_url")]
    if not items:
        raise ValidationFailed("Select at least one item with an image")

    text = ai.complete(combinations_prompt([it["image_url"] for it in items]))
    return {"combinations": split_combinations(text, items)}


# ------------------ ANALYTICS ------------------
@router.get("/analytics")
def wardrobe_analytics(owner: ObjectId = Depends(get_owner_id), db: Database = Depends(get_db)):
    items = list(db[ITEMS].find({"userId": owner}))
    return {
        "total": len(items),
        "categories": count_by(items, "category"),
        "seasons": count_by(items, "seasons"),
        "underused": [snapshot(it) for it in underused(items)],
    }


@router.post("/analytics/suggestions")
def restyle_suggestions(
    owner: ObjectId = Depends(get_owner_id),
    db: Database = Depends(get_db),
    ai: CompletionClient = Depends(get_completion_client),
):
    stale = underused(list(db[ITEMS].find({"userId": owner})))
    if not stale:
        raise ValidationFailed("No underused items to restyle")

    text = ai.complete(restyle_prompt([it.get("title") or "untitled item" for it in stale]))
    return {"suggestions": text, "underused": [snapshot(it) for it in stale]}
