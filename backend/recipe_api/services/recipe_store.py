# app/services/recipe_store.py
# 레시피 저장소: recipes 컬렉션 위의 얇은 래퍼
# - 쓰기 실패는 PersistenceError로 감싼다 (라우터에서 503)
# - 동시성은 Mongo 단일 문서 원자성에 맡긴다 (별도 락 없음)

from __future__ import annotations
import logging
import re
import uuid
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from recipe_api.core.errors import PersistenceError, RecipeNotFound
from recipe_api.db.models.recipe import RecipeDoc, RecipeDraft

log = logging.getLogger(__name__)


def regex_union(words: Sequence[str]) -> re.Pattern:
    """단어들을 이스케이프해 대소문자 무시 OR 정규식으로"""
    return re.compile("|".join(re.escape(w) for w in words if w), re.I)


class RecipeStore:
    def __init__(self, collection: AsyncIOMotorCollection, embedding_dim: Optional[int] = None) -> None:
        self.col = collection
        self.embedding_dim = embedding_dim

    def _check_embedding(self, embedding: Optional[List[float]]) -> None:
        # 유사도 검색 컬럼과 차원이 다르면 저장 거부
        if embedding is None or self.embedding_dim is None:
            return
        if len(embedding) != self.embedding_dim:
            raise PersistenceError(
                f"embedding has {len(embedding)} dimensions, store expects {self.embedding_dim}"
            )

    async def insert(
        self,
        draft: RecipeDraft,
        *,
        embedding: Optional[List[float]] = None,
        source: str = "user",
        parent_id: Optional[str] = None,
    ) -> RecipeDoc:
        self._check_embedding(embedding)
        now = datetime.utcnow()
        doc = RecipeDoc(
            **draft.model_dump(),
            id=uuid.uuid4().hex,
            source=source,
            parent_id=parent_id,
            embedding=embedding,
            created_at=now,
            updated_at=now,
        )
        try:
            await self.col.insert_one(doc.to_mongo())
        except PyMongoError as e:
            log.exception("recipe insert failed: %s", e)
            raise PersistenceError("recipe insert failed") from e
        log.info("recipe stored id=%s source=%s", doc.id, source)
        return doc

    async def get(self, recipe_id: str) -> RecipeDoc:
        try:
            raw = await self.col.find_one({"_id": recipe_id})
        except PyMongoError as e:
            log.exception("recipe lookup failed: %s", e)
            raise PersistenceError("recipe store unavailable") from e
        if raw is None:
            raise RecipeNotFound(recipe_id)
        return RecipeDoc.from_mongo(raw)

    async def list(self, page: int = 1, limit: int = 20, approved: Optional[bool] = None) -> List[RecipeDoc]:
        q: Dict[str, Any] = {}
        if approved is not None:
            q["approved"] = approved
        skip = max(page - 1, 0) * limit
        try:
            cur = self.col.find(q).sort("created_at", -1).skip(skip).limit(limit)
            docs = await cur.to_list(length=limit)
        except PyMongoError as e:
            log.exception("recipe list failed: %s", e)
            raise PersistenceError("recipe store unavailable") from e
        return [RecipeDoc.from_mongo(d) for d in docs]

    async def update(self, recipe_id: str, fields: Dict[str, Any]) -> RecipeDoc:
        # 기존 문서에 덮어쓴 뒤 RecipeDraft로 재검증 (태그 소문자화 등 동일 규칙)
        current = await self.get(recipe_id)
        merged = {**current.model_dump(include=set(RecipeDraft.model_fields)), **fields}
        draft = RecipeDraft(**merged)
        updates = {k: v for k, v in draft.model_dump().items() if k in fields}
        updates["total_time"] = draft.total_time
        updates["updated_at"] = datetime.utcnow()
        try:
            res = await self.col.update_one({"_id": recipe_id}, {"$set": updates})
        except PyMongoError as e:
            log.exception("recipe update failed: %s", e)
            raise PersistenceError("recipe update failed") from e
        if res.matched_count == 0:
            raise RecipeNotFound(recipe_id)
        return await self.get(recipe_id)

    async def approve(self, recipe_id: str) -> RecipeDoc:
        return await self.update(recipe_id, {"approved": True})

    async def candidates(
        self,
        clauses: Sequence[Dict[str, Any]],
        exclusions: Sequence[str] = (),
        limit: int = 500,
        match_all: bool = False,
    ) -> List[RecipeDoc]:
        """
        매칭 후보 로드 (최신순).
        - clauses: 속성별 조건. match_all이면 전부($and), 아니면 하나 이상($or) 만족하는 문서만
        - 제외 재료는 부분일치 정규식으로 DB에서 컷, matcher가 한 번 더 판정한다
        - limit은 필터 뒤에 적용
        """
        if not clauses:
            return []
        parts: List[Dict[str, Any]] = list(clauses) if match_all else [{"$or": list(clauses)}]
        if exclusions:
            parts.append({"ingredients.name": {"$not": regex_union(exclusions)}})
        q = parts[0] if len(parts) == 1 else {"$and": parts}
        try:
            cur = self.col.find(q).sort("created_at", -1).limit(limit)
            docs = await cur.to_list(length=limit)
        except PyMongoError as e:
            log.exception("candidate lookup failed: %s", e)
            raise PersistenceError("recipe store unavailable") from e
        return [RecipeDoc.from_mongo(d) for d in docs]

    async def iter_searchable(self, text_rx: re.Pattern) -> AsyncIterator[RecipeDoc]:
        """
        유사도 검색 대상 전체를 커서로 흘려보낸다 (메모리에 다 올리지 않음).
        - 임베딩이 있는 레시피 + 제목/설명/태그에 질의 문구가 들어간 레시피
        """
        q = {"$or": [{"embedding": {"$ne": None}}, {"title": text_rx}, {"description": text_rx}, {"tags": text_rx}]}
        try:
            async for raw in self.col.find(q):
                yield RecipeDoc.from_mongo(raw)
        except PyMongoError as e:
            log.exception("search scan failed: %s", e)
            raise PersistenceError("recipe store unavailable") from e
