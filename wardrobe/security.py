import logging
from datetime import datetime, timedelta
from typing import Optional

from bson import ObjectId
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .config import Settings
from .db import parse_object_id
from .errors import Unauthorized

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/wardrobe", "/outfits", "/suggestions", "/analytics")
OWNER_HEADER = "x-user-id"
TOKEN_COOKIE = "token"

# ------------------ PASSWORDS ------------------
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(pw: str) -> str:
    return pwd_context.hash(pw)


def verify_password(pw: str, hashed: str) -> bool:
    # passlib compares digests in constant time
    return pwd_context.verify(pw, hashed)


# ------------------ TOKENS ------------------
def create_access_token(settings: Settings, subject: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    return jwt.encode({"sub": subject, "exp": expire}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(settings: Settings, token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def set_token_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.token_max_age,
    )


def extract_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization")
    if header:
        token = header[len("Bearer "):] if header.startswith("Bearer ") else header
        if token.strip():
            return token.strip()
    return request.cookies.get(TOKEN_COOKIE) or None


def is_protected(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in PROTECTED_PREFIXES)


# ------------------ AUTH GATE ------------------
async def auth_gate(request: Request, call_next):
    """
    Verify the bearer token on protected paths and forward the subject as the
    ``X-User-Id`` header. Anything that does not verify is rejected with 401
    before the route runs.
    """
    if request.method == "OPTIONS" or not is_protected(request.url.path):
        return await call_next(request)

    # a client must never be able to pick its own owner id
    headers = [(k, v) for k, v in request.scope["headers"] if k.lower() != OWNER_HEADER.encode()]

    token = extract_token(request)
    if not token:
        return JSONResponse(status_code=401, content={"error": "Missing authentication token"})

    settings: Settings = request.app.state.settings
    try:
        payload = decode_token(settings, token)
        subject = payload["sub"]
        if parse_object_id(subject) is None:
            raise JWTError("subject is not a user id")
    except ExpiredSignatureError:
        return JSONResponse(status_code=401, content={"error": "Token has expired"})
    except (JWTError, KeyError) as e:
        logger.warning("Authentication error: %s", e)
        return JSONResponse(status_code=401, content={"error": "Invalid or expired authentication token"})

    headers.append((OWNER_HEADER.encode(), subject.encode()))
    request.scope["headers"] = headers
    return await call_next(request)


def get_owner_id(request: Request) -> ObjectId:
    """Owner identity forwarded by the auth gate."""
    owner = parse_object_id(request.headers.get(OWNER_HEADER))
    if owner is None:
        raise Unauthorized("Unauthorized")
    return owner
