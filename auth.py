"""Users, password hashing and cookie sessions."""
import hashlib
import hmac
import logging
import secrets
from datetime import timedelta, timezone
from typing import Optional

from bson import ObjectId
from fastapi import Depends, Request
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import settings
from database import create_document, get_db, parse_object_id, utcnow
from exceptions import AuthenticationException, AuthorizationException, ValidationException
from schemas import Users

logger = logging.getLogger(__name__)

_SCRYPT_PARAMS = {"n": 16384, "r": 8, "p": 1, "dklen": 64}


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), **_SCRYPT_PARAMS)
    return f"{digest.hex()}.{salt}"


def verify_password(password: str, stored: str) -> bool:
    try:
        digest_hex, salt = stored.split(".", 1)
    except ValueError:
        return False
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), **_SCRYPT_PARAMS)
    return hmac.compare_digest(digest.hex(), digest_hex)


def public_user(user: dict) -> dict:
    """User document without the password hash."""
    return {k: v for k, v in user.items() if k != "password"}


class UserStore:
    def __init__(self, db: Database):
        self.db = db
        self.users = db["users"]

    def get(self, user_id) -> Optional[dict]:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        return self.users.find_one({"_id": oid})

    def get_by_username(self, username: str) -> Optional[dict]:
        return self.users.find_one({"username": username})

    def create(self, payload: Users, is_admin: bool = False) -> dict:
        if self.get_by_username(payload.username):
            raise ValidationException("Username already exists")
        data = payload.model_dump()
        data["password"] = hash_password(payload.password)
        data["is_admin"] = is_admin
        try:
            doc = create_document("users", data, database=self.db)
        except DuplicateKeyError:
            raise ValidationException("Username already exists")
        logger.info("Registered user %s (%s)", doc["_id"], doc["username"])
        return doc

    def authenticate(self, username: str, password: str) -> Optional[dict]:
        user = self.get_by_username(username)
        if user is None or not verify_password(password, user.get("password", "")):
            return None
        return user


class SessionStore:
    def __init__(self, db: Database, ttl_seconds: int = settings.session_ttl_seconds):
        self.sessions = db["sessions"]
        self.ttl_seconds = ttl_seconds

    def create(self, user_id: ObjectId) -> str:
        token = secrets.token_urlsafe(32)
        now = utcnow()
        self.sessions.insert_one(
            {
                "token": token,
                "user_id": user_id,
                "created_at": now,
                "expires_at": now + timedelta(seconds=self.ttl_seconds),
            }
        )
        return token

    def resolve(self, token: Optional[str]) -> Optional[ObjectId]:
        """User id for a live session token, or None."""
        if not token:
            return None
        session = self.sessions.find_one({"token": token})
        if session is None:
            return None
        expires_at = session["expires_at"]
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= utcnow():
            self.sessions.delete_one({"_id": session["_id"]})
            return None
        return session["user_id"]

    def delete(self, token: Optional[str]) -> None:
        if token:
            self.sessions.delete_one({"token": token})


# -----------------------------
# FastAPI dependencies
# -----------------------------

def optional_user(request: Request, db: Database = Depends(get_db)) -> Optional[dict]:
    token = request.cookies.get(settings.session_cookie_name)
    user_id = SessionStore(db).resolve(token)
    if user_id is None:
        return None
    return UserStore(db).get(user_id)


def current_user(user: Optional[dict] = Depends(optional_user)) -> dict:
    if user is None:
        raise AuthenticationException("Authentication required")
    return user


def admin_user(user: dict = Depends(current_user)) -> dict:
    if not user.get("is_admin"):
        raise AuthorizationException("Admin access required")
    return user
