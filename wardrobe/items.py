"""Wardrobe item documents: building them from forms and spreadsheet rows."""

import re
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import pandas as pd
from bson import ObjectId

ITEM_FIELDS = (
    "title",
    "category",
    "type",
    "size",
    "brand",
    "source",
    "purchasePrice",
    "purchaseDate",
    "purpose",
    "seasons",
    "occasion",
    "mainColor",
    "additionalColors",
    "pattern",
    "primaryMaterial",
    "secondaryMaterials",
    "style",
    "embellishments",
    "designDetails",
    "personalTags",
    "notes",
)

SNAPSHOT_FIELDS = ("_id", "title", "category", "image_url")


def _truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _form_text(value: Any) -> Optional[str]:
    # UploadFile parts under a text field name are ignored
    return value if isinstance(value, str) else None


def item_from_form(form: Mapping[str, Any]) -> Dict[str, Any]:
    """Descriptive fields for a new item; absent fields are stored as None."""
    doc: Dict[str, Any] = {name: _form_text(form.get(name)) for name in ITEM_FIELDS}
    doc["isSecondhand"] = _truthy(form.get("isSecondhand") or "")
    return doc


def item_updates_from_form(form: Mapping[str, Any]) -> Dict[str, Any]:
    """Only the descriptive fields the form actually carries."""
    updates: Dict[str, Any] = {}
    for name in ITEM_FIELDS:
        if name in form and _form_text(form.get(name)) is not None:
            updates[name] = form.get(name)
    if "isSecondhand" in form:
        updates["isSecondhand"] = _truthy(form.get("isSecondhand") or "")
    return updates


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return value


def _purchase_date(value: Any) -> datetime:
    if value in ("", None):
        return datetime.utcnow()
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return datetime.utcnow()
    return parsed.to_pydatetime().replace(tzinfo=None)


def item_from_row(row: Mapping[str, Any], owner: ObjectId, image_url: str) -> Dict[str, Any]:
    """Build an item from one spreadsheet row, blank cells defaulting to ''."""
    doc: Dict[str, Any] = {"userId": owner}
    for name in ITEM_FIELDS:
        doc[name] = str(_cell(row.get(name)))
    doc["isSecondhand"] = _truthy(_cell(row.get("isSecondhand")) or False)
    doc["purchaseDate"] = _purchase_date(_cell(row.get("purchaseDate")))
    doc["image_url"] = image_url
    doc["created_at"] = datetime.utcnow()
    return doc


def _exact(value: str) -> Dict[str, str]:
    return {"$regex": f"^{re.escape(value)}$", "$options": "i"}


def build_filter(
    owner: ObjectId,
    category: Optional[str] = None,
    color: Optional[str] = None,
    season: Optional[str] = None,
) -> Dict[str, Any]:
    query: Dict[str, Any] = {"userId": owner}
    if category and category.lower() != "all":
        query["category"] = _exact(category)
    if color:
        query["mainColor"] = {"$regex": re.escape(color), "$options": "i"}
    if season and season.lower() != "all":
        query["seasons"] = _exact(season)
    return query


def matching_filter(owner: ObjectId, purpose: str, occasion: str) -> Dict[str, Any]:
    return {"userId": owner, "purpose": _exact(purpose), "occasion": _exact(occasion)}


def snapshot(item: Mapping[str, Any]) -> Dict[str, str]:
    """Denormalized copy embedded in outfits."""
    return {name: str(item.get(name) or "") for name in SNAPSHOT_FIELDS}
