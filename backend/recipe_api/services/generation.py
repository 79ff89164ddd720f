# app/services/generation.py
# 합성 프롬프트 → 외부 생성 API (OpenAI 호환 Chat Completions)
# - 엔드포인트/키는 Settings에서만 받음, 없으면 ConfigurationError
# - SDK 자체 재시도는 끄고(max_retries=0) 고정 3회/2초 재시도만 사용
# - 응답 텍스트는 여기선 불투명 문자열, JSON 해석은 parse_generated_recipe

from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, Field, ValidationError

from recipe_api.core.config import Settings
from recipe_api.core.errors import ConfigurationError, GenerationFailedError
from recipe_api.db.models.recipe import RecipeDraft
from recipe_api.services.retry import retry

log = logging.getLogger(__name__)


class UnreadableResponse(ValueError):
    # 2xx지만 본문에서 텍스트를 못 꺼냄 (JSON 파싱 실패와 같이 재시도 대상)
    pass


class GeneratedRecipe(BaseModel):
    candidate: RecipeDraft
    alternatives: List[str] = Field(default_factory=list)


class GenerationClient:
    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self.http_client = http_client
        self._client: Optional[AsyncOpenAI] = None

    def _sdk(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        s = self.settings
        if not s.GENERATION_API_BASE:
            raise ConfigurationError("GENERATION_API_BASE not set")
        if not s.GENERATION_API_KEY:
            raise ConfigurationError("GENERATION_API_KEY not set")
        self._client = AsyncOpenAI(
            api_key=s.GENERATION_API_KEY,
            base_url=s.GENERATION_API_BASE,
            timeout=s.GENERATION_TIMEOUT,
            max_retries=0,
            http_client=self.http_client,
        )
        return self._client

    async def _once(self, prompt: str, attributes: Optional[Dict[str, Any]]) -> str:
        rsp = await self._sdk().chat.completions.create(
            model=self.settings.GENERATION_MODEL,
            messages=[{"role": "user", "content": prompt}],
            stream=False,
            extra_body={"attributes": attributes or {}},
        )
        text = rsp.choices[0].message.content if rsp and rsp.choices else None
        if not text:
            raise UnreadableResponse("generation response had no content")
        return text

    async def generate(self, prompt: str, attributes: Optional[Dict[str, Any]] = None) -> str:
        # 설정 누락은 재시도 대상 아님
        self._sdk()
        try:
            return await retry(
                lambda: self._once(prompt, attributes),
                max_attempts=self.settings.RETRY_ATTEMPTS,
                delay=self.settings.RETRY_DELAY,
                retry_on=(openai.APIError, httpx.HTTPError, ValueError),
                label="generation",
            )
        except (openai.APIError, httpx.HTTPError, ValueError) as e:
            log.error("generation gave up after %d attempts: %s", self.settings.RETRY_ATTEMPTS, e)
            raise GenerationFailedError("generation failed after retries", cause=e) from e


# 모델이 ```json ... ``` 으로 감싸서 주는 경우가 많음
_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.S)


def parse_generated_recipe(raw: str) -> GeneratedRecipe:
    """
    생성 텍스트 → 후보 레시피 + 대안 제목들
    - {"candidate": {...}, "alternatives": [...]} 또는 레시피 객체 하나 둘 다 허용
    - 대안은 문자열이거나 {"title": ...} 객체
    """
    text = (raw or "").strip()
    m = _FENCE_RE.match(text)
    if m:
        text = m.group(1)

    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationFailedError("generated text is not JSON", cause=e) from e
    if not isinstance(obj, dict):
        raise GenerationFailedError("generated JSON is not an object")

    body = obj.get("candidate") if isinstance(obj.get("candidate"), dict) else obj
    alts: List[str] = []
    raw_alts = obj.get("alternatives")
    for a in raw_alts if isinstance(raw_alts, list) else []:
        if isinstance(a, str) and a.strip():
            alts.append(a.strip())
        elif isinstance(a, dict) and a.get("title"):
            alts.append(str(a["title"]).strip())

    # 생성된 후보는 사람이 승인하기 전까지 미승인
    fields = {k: v for k, v in body.items() if k != "alternatives"}
    fields["approved"] = False
    try:
        candidate = RecipeDraft(**fields)
    except (ValidationError, TypeError) as e:
        raise GenerationFailedError("generated recipe does not match the expected schema", cause=e) from e
    return GeneratedRecipe(candidate=candidate, alternatives=alts)
