import logging
from datetime import datetime

from fastapi import APIRouter, Body, Depends, Request, Response
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from ..db import USERS, get_db
from ..errors import Conflict, NotFound, Unauthorized, ValidationFailed
from ..security import create_access_token, get_password_hash, set_token_cookie, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/auth")
def authenticate(
    request: Request,
    response: Response,
    payload: dict = Body(...),  # { "action": "signup" | "login", "email": ..., "password": ... }
    db: Database = Depends(get_db),
):
    settings = request.app.state.settings
    action = payload.get("action")
    email = payload.get("email") or ""
    password = payload.get("password") or ""

    if action not in ("signup", "login"):
        raise ValidationFailed("Invalid action")
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationFailed("Email and password must be strings")
    email = email.strip().lower()
    if not email or not password:
        raise ValidationFailed("Email and password are required")

    users = db[USERS]
    if action == "signup":
        if users.find_one({"email": email}):
            raise Conflict("User already exists")
        try:
            result = users.insert_one(
                {"email": email, "password": get_password_hash(password), "created_at": datetime.utcnow()}
            )
        except DuplicateKeyError:
            raise Conflict("User already exists")
        user_id = str(result.inserted_id)
        logger.info("registered user %s", user_id)
    else:
        user = users.find_one({"email": email})
        if not user:
            raise NotFound("User not found")
        if not verify_password(password, user["password"]):
            raise Unauthorized("Invalid password")
        user_id = str(user["_id"])

    token = create_access_token(settings, user_id)
    set_token_cookie(response, settings, token)
    return {"token": token}
