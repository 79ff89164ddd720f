# 목적: 레시피 텍스트 → 임베딩 벡터 (유사도 검색용)
# - live: OpenAI 호환 /embeddings 호출, 3회/2초 고정 재시도
# - placeholder: 테스트 설정 전용 고정 벡터 (prod에서는 Settings가 거부)
# 확장: Qdrant/PGVector/Atlas Vector 등 외부 벡터DB로 이동 가능.

from __future__ import annotations
import logging
from typing import List, Optional

import httpx
import openai
from openai import AsyncOpenAI

from recipe_api.core.config import EmbeddingMode, Settings
from recipe_api.core.errors import ConfigurationError, EmbeddingFailedError
from recipe_api.db.models.recipe import RecipeDraft
from recipe_api.services.retry import retry

log = logging.getLogger(__name__)

PLACEHOLDER_EMBEDDING = (0.1, 0.2, 0.3, 0.4, 0.5)


def recipe_embedding_text(rec: RecipeDraft) -> str:
    # 제목/설명/재료명/태그를 한 문서로 이어붙여 임베딩 입력 생성
    ings = " ".join(i.name for i in rec.ingredients if i.name)
    tags = " ".join(rec.tags)
    return f"{rec.title}\n{rec.description}\n{ings}\n{tags}".strip()


class EmbeddingClient:
    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self.http_client = http_client
        self._client: Optional[AsyncOpenAI] = None

    @property
    def placeholder(self) -> bool:
        return self.settings.EMBEDDING_MODE is EmbeddingMode.placeholder

    def _sdk(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        s = self.settings
        if not s.EMBEDDING_API_BASE:
            raise ConfigurationError("EMBEDDING_API_BASE not set")
        if not s.EMBEDDING_API_KEY:
            raise ConfigurationError("EMBEDDING_API_KEY not set")
        self._client = AsyncOpenAI(
            api_key=s.EMBEDDING_API_KEY,
            base_url=s.EMBEDDING_API_BASE,
            timeout=s.EMBEDDING_TIMEOUT,
            max_retries=0,
            http_client=self.http_client,
        )
        return self._client

    async def _once(self, text: str) -> List[List[float]]:
        emb = await self._sdk().embeddings.create(
            model=self.settings.EMBEDDING_MODEL,
            input=text,
            encoding_format="float",
        )
        data = getattr(emb, "data", None) or []
        return [list(d.embedding) for d in data if getattr(d, "embedding", None)]

    async def embed(self, text: str) -> List[float]:
        if self.placeholder:
            return list(PLACEHOLDER_EMBEDDING)

        self._sdk()
        try:
            vectors = await retry(
                lambda: self._once(text),
                max_attempts=self.settings.RETRY_ATTEMPTS,
                delay=self.settings.RETRY_DELAY,
                retry_on=(openai.APIError, httpx.HTTPError, ValueError),
                label="embedding",
            )
        except (openai.APIError, httpx.HTTPError, ValueError) as e:
            log.error("embedding gave up after %d attempts: %s", self.settings.RETRY_ATTEMPTS, e)
            raise EmbeddingFailedError("embedding failed after retries", cause=e) from e

        if not vectors:
            raise EmbeddingFailedError("embedding response contained no embeddings")
        return vectors[0]
