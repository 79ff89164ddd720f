# app/services/search.py
# 자유 텍스트 레시피 검색: 질의 임베딩과 저장된 임베딩의 코사인 유사도
# - 제목/설명/태그에 질의 문구가 그대로 들어간 레시피를 먼저 (텍스트 일치 우선)
# - 그 안에서는 유사도 내림차순
# - 차원이 다른 벡터(예: placeholder로 저장된 것)는 유사도 0으로 본다

from __future__ import annotations
import heapq
import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from recipe_api.core.errors import EmptyQueryError
from recipe_api.db.models.recipe import RecipeDoc
from recipe_api.services.embeddings import EmbeddingClient
from recipe_api.services.recipe_store import RecipeStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchHit:
    recipe: RecipeDoc
    score: float
    text_match: bool


def cosine(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0 or nb == 0:
        return 0.0
    return dot / (na * nb)


def _text_match(recipe: RecipeDoc, needle: str) -> bool:
    hay = " ".join([recipe.title, recipe.description, " ".join(recipe.tags)]).lower()
    return needle in hay


async def search_recipes(
    store: RecipeStore,
    embeddings: EmbeddingClient,
    query: str,
    limit: int = 10,
    min_score: float = 0.0,
) -> List[SearchHit]:
    """
    질의 → 상위 limit개 SearchHit.
    텍스트 일치가 없고 유사도가 min_score 이하인 레시피는 버린다.
    """
    needle = (query or "").strip().lower()
    if not needle:
        raise EmptyQueryError("empty query")

    vector = await embeddings.embed(query.strip())
    text_rx = re.compile(re.escape(needle), re.I)

    # (text_match, score, tie) 기준 상위 limit개만 힙에 유지
    heap: List[Tuple[bool, float, int, SearchHit]] = []
    seen = 0
    async for recipe in store.iter_searchable(text_rx):
        seen += 1
        hit = SearchHit(recipe=recipe, score=cosine(vector, recipe.embedding), text_match=_text_match(recipe, needle))
        if not hit.text_match and hit.score <= min_score:
            continue
        item = (hit.text_match, hit.score, -seen, hit)
        if len(heap) < limit:
            heapq.heappush(heap, item)
        elif item[:3] > heap[0][:3]:
            heapq.heapreplace(heap, item)

    log.info("search scanned %d recipes, %d hits", seen, len(heap))
    return [h for *_, h in sorted(heap, key=lambda x: x[:3], reverse=True)]
