import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd
from bson import ObjectId
from fastapi import APIRouter, Depends, Request, UploadFile
from pymongo.database import Database
from starlette.concurrency import run_in_threadpool

from ..db import ITEMS, get_db, parse_object_id, serialize
from ..errors import NotFound, UpstreamError, ValidationFailed, WardrobeError
from ..images import ImageService, get_image_service
from ..items import build_filter, item_from_form, item_from_row, item_updates_from_form
from ..security import get_owner_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wardrobe", tags=["wardrobe"])


def _owned(item_id: str, owner: ObjectId) -> Dict[str, Any]:
    oid = parse_object_id(item_id)
    if oid is None:
        raise NotFound("Item not found")
    return {"_id": oid, "userId": owner}


def _upload_file(form, name: str) -> Optional[UploadFile]:
    value = form.get(name)
    # starlette hands back plain strings for non-file parts
    if value is None or isinstance(value, str) or not value.filename:
        return None
    return value


async def _hosted_image(images: ImageService, upload: UploadFile) -> str:
    data = await upload.read()
    try:
        return await run_in_threadpool(images.process, data)
    except UpstreamError as e:
        logger.error("Image processing error: %s", e.details or e.message)
        raise UpstreamError("Failed to process and upload image", details=e.details or e.message)


# ------------------ COLLECTION ------------------
@router.get("")
def list_items(
    category: Optional[str] = None,
    color: Optional[str] = None,
    season: Optional[str] = None,
    owner: ObjectId = Depends(get_owner_id),
    db: Database = Depends(get_db),
):
    query = build_filter(owner, category=category, color=color, season=season)
    return serialize(list(db[ITEMS].find(query)))


@router.post("")
async def create_item(
    request: Request,
    owner: ObjectId = Depends(get_owner_id),
    db: Database = Depends(get_db),
    images: ImageService = Depends(get_image_service),
):
    """Multipart item fields + optional ``image``; the image is cut out and hosted first."""
    form = await request.form()
    image = _upload_file(form, "image")
    image_url = await _hosted_image(images, image) if image is not None else ""

    doc = item_from_form(form)
    doc.update({"userId": owner, "image_url": image_url, "created_at": datetime.utcnow()})
    result = await run_in_threadpool(db[ITEMS].insert_one, doc)

    return {"success": True, "_id": str(result.inserted_id), "image_url": image_url}


@router.post("/bulk")
async def bulk_import(
    request: Request,
    owner: ObjectId = Depends(get_owner_id),
    db: Database = Depends(get_db),
    images: ImageService = Depends(get_image_service),
):
    """
    Import a spreadsheet of items whose images live at external URLs.

    Rows fail individually: the response lists per-row errors alongside the
    ids of everything that did get stored.
    """
    form = await request.form()
    sheet = _upload_file(form, "excel")
    if sheet is None:
        raise ValidationFailed("Missing Excel file")

    contents = await sheet.read()
    rows = await run_in_threadpool(_read_rows, sheet.filename or "", contents)

    uploaded: List[Dict[str, Any]] = []
    errors: List[Dict[str, Any]] = []
    for row in rows:
        title = row.get("title") or ""
        try:
            uploaded.append(await run_in_threadpool(_import_row, images, row, owner))
        except Exception as e:
            message = e.message if isinstance(e, WardrobeError) else f"Failed to process image: {e}"
            errors.append({"item": title, "error": message})
            logger.error("Error processing item %s: %s", title, e)

    if not uploaded:
        raise ValidationFailed("No items were successfully processed", errors=errors)

    result = await run_in_threadpool(db[ITEMS].insert_many, uploaded)

    body: Dict[str, Any] = {
        "success": True,
        "uploadedItems": [str(i) for i in result.inserted_ids],
        "totalProcessed": len(rows),
        "successfulUploads": len(uploaded),
        "failedUploads": len(errors),
    }
    if errors:
        body["errors"] = errors
    return body


def _read_rows(filename: str, contents: bytes) -> List[Dict[str, Any]]:
    try:
        name = filename.lower()
        if name.endswith(".csv"):
            df = pd.read_csv(io.BytesIO(contents))
        elif name.endswith(".xls"):
            df = pd.read_excel(io.BytesIO(contents), engine="xlrd")
        else:
            df = pd.read_excel(io.BytesIO(contents), engine="openpyxl")
    except Exception as e:
        raise ValidationFailed("Could not read spreadsheet", details=str(e))
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def _import_row(images: ImageService, row: Dict[str, Any], owner: ObjectId) -> Dict[str, Any]:
    url = row.get("image_url")
    if not url:
        raise ValidationFailed(f"Missing image URL for item: {row.get('title') or ''}")
    data = images.fetch_remote(str(url))
    hosted = images.upload(images.remove_background(data))
    return item_from_row(row, owner, hosted)


# ------------------ SINGLE ITEM ------------------
@router.get("/{item_id}")
def get_item(item_id: str, owner: ObjectId = Depends(get_owner_id), db: Database = Depends(get_db)):
    item = db[ITEMS].find_one(_owned(item_id, owner))
    if not item:
        raise NotFound("Item not found")
    return serialize(item)


@router.put("/{item_id}")
async def update_item(
    item_id: str,
    request: Request,
    owner: ObjectId = Depends(get_owner_id),
    db: Database = Depends(get_db),
    images: ImageService = Depends(get_image_service),
):
    query = _owned(item_id, owner)
    if await run_in_threadpool(db[ITEMS].find_one, query, {"_id": 1}) is None:
        raise NotFound("Item not found")
    form = await request.form()

    updates = item_updates_from_form(form)
    image = _upload_file(form, "image")
    if image is not None:
        updates["image_url"] = await _hosted_image(images, image)
    elif isinstance(form.get("image_url"), str) and form.get("image_url"):
        updates["image_url"] = form.get("image_url")
    updates["updated_at"] = datetime.utcnow()

    result = await run_in_threadpool(db[ITEMS].update_one, query, {"$set": updates})
    if result.matched_count == 0:
        raise NotFound("Item not found")
    return {"acknowledged": True, "matchedCount": result.matched_count, "modifiedCount": result.modified_count}


@router.post("/{item_id}/wear")
def mark_worn(item_id: str, owner: ObjectId = Depends(get_owner_id), db: Database = Depends(get_db)):
    now = datetime.utcnow()
    result = db[ITEMS].update_one(_owned(item_id, owner), {"$set": {"lastUsed": now, "updated_at": now}})
    if result.matched_count == 0:
        raise NotFound("Item not found")
    return {"acknowledged": True, "lastUsed": now.isoformat()}


@router.delete("/{item_id}")
def delete_item(item_id: str, owner: ObjectId = Depends(get_owner_id), db: Database = Depends(get_db)):
    result = db[ITEMS].delete_one(_owned(item_id, owner))
    if result.deleted_count == 0:
        raise NotFound("Item not found")
    return {"acknowledged": True, "deletedCount": result.deleted_count}
