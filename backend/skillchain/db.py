import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from .config import Settings
from .models import CandidateProfile, User
from .profiles import new_profile_id

log = logging.getLogger(__name__)


class UserExistsError(Exception):
    pass


def get_database(settings: Settings):
    client = AsyncIOMotorClient(settings.mongodb_uri)
    return client[settings.mongo_db]


def hash_password(password: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


def _to_user(doc: dict) -> User:
    return User.model_validate({"email": doc["email"], "name": doc["name"], "profile": doc["profile"]})


class ProfileStore:
    """Users and their skill profiles, kept in the ``users`` collection."""

    def __init__(self, db):
        self.users = db["users"]
        self.logs = db["logs"]

    async def create_user(
        self, name: str, email: str, password: str, profile: Optional[CandidateProfile] = None
    ) -> User:
        if await self.users.find_one({"email": email}):
            raise UserExistsError(email)
        if profile is None:
            profile = CandidateProfile(id=new_profile_id(), name=name, summary="New profile created.")
        salt = secrets.token_hex(8)
        doc = {
            "email": email,
            "name": name,
            "salt": salt,
            "passwordHash": hash_password(password, salt),
            "profile": profile.model_dump(by_alias=True),
        }
        await self.users.insert_one(doc)
        await self.log_action(f"register:{email}")
        return _to_user(doc)

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        doc = await self.users.find_one({"email": email})
        if not doc or hash_password(password, doc["salt"]) != doc["passwordHash"]:
            return None
        await self.log_action(f"login:{email}")
        return _to_user(doc)

    async def get_user(self, email: str) -> Optional[User]:
        doc = await self.users.find_one({"email": email})
        return _to_user(doc) if doc else None

    async def find_by_profile_id(self, profile_id: str) -> Optional[CandidateProfile]:
        doc = await self.users.find_one({"profile.id": profile_id})
        return CandidateProfile.model_validate(doc["profile"]) if doc else None

    async def save_profile(self, email: str, profile: CandidateProfile) -> bool:
        result = await self.users.update_one(
            {"email": email},
            {"$set": {"profile": profile.model_dump(by_alias=True)}},
        )
        if result.matched_count == 0:
            log.warning(f"No user {email} to save profile for")
            return False
        return True

    async def log_action(self, action: str) -> None:
        await self.logs.insert_one({"action": action, "date": datetime.now(timezone.utc).isoformat()})
