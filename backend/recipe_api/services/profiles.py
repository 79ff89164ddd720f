# app/services/profiles.py
# 사용자 프로필 저장/조회 — 가람 담당
# soft delete: deleted_at만 찍고 문서는 남긴다

from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError, PyMongoError

from recipe_api.core.errors import PersistenceError, ProfileConflict
from recipe_api.db.models.user_prefs import UserProfileDoc, UserProfileIn

log = logging.getLogger(__name__)


class ProfileStore:
    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.col = collection

    async def get(self, anon_id: str) -> Optional[UserProfileDoc]:
        """삭제되지 않은 프로필만 반환"""
        try:
            raw = await self.col.find_one({"anon_id": anon_id, "deleted_at": None})
        except PyMongoError as e:
            log.exception("profile lookup failed: %s", e)
            raise PersistenceError("profile store unavailable") from e
        if raw is None:
            return None
        raw.pop("_id", None)
        return UserProfileDoc(**raw)

    async def save(self, anon_id: str, payload: UserProfileIn) -> UserProfileDoc:
        """Upsert. 삭제됐던 프로필이면 되살린다"""
        now = datetime.utcnow()
        data = payload.model_dump()
        data.update({"anon_id": anon_id, "updated_at": now, "deleted_at": None})
        try:
            await self.col.update_one(
                {"anon_id": anon_id},
                {"$set": data, "$setOnInsert": {"created_at": now}},
                upsert=True,
            )
        except DuplicateKeyError as e:
            log.info("profile save conflict anon_id=%s: %s", anon_id, e)
            raise ProfileConflict("email already used by another profile") from e
        except PyMongoError as e:
            log.exception("profile save failed: %s", e)
            raise PersistenceError("profile save failed") from e
        saved = await self.get(anon_id)
        if saved is None:
            raise PersistenceError("profile missing right after save")
        return saved

    async def soft_delete(self, anon_id: str) -> bool:
        try:
            res = await self.col.update_one(
                {"anon_id": anon_id, "deleted_at": None},
                {"$set": {"deleted_at": datetime.utcnow()}},
            )
        except PyMongoError as e:
            log.exception("profile delete failed: %s", e)
            raise PersistenceError("profile delete failed") from e
        return res.matched_count > 0

    async def touch(self, anon_id: str) -> None:
        # 마지막 활동 시각 (실패해도 요청은 계속)
        try:
            await self.col.update_one(
                {"anon_id": anon_id, "deleted_at": None},
                {"$set": {"last_active": datetime.utcnow()}},
            )
        except PyMongoError as e:
            log.warning("profile touch failed: %s", e)
