# app/services/matcher.py
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Any, Dict, List

from recipe_api.db.models.recipe import RecipeDoc
from recipe_api.services.query_parser import ParsedQuery
from recipe_api.services.recipe_store import RecipeStore

# -----------------------------------------------------------------------------
# ParsedQuery → 저장된 레시피 매칭
# - 제외 재료가 재료명에 (부분 문자열로) 들어간 레시피는 무조건 탈락
# - exact: 기본값이 아닌 속성을 전부 만족
# - close: 하나 이상 만족 (exact ⊂ close)
# - 정렬: 만족한 속성 수 내림차순, 동점이면 최신 생성순
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class RecipeMatch:
    recipe: RecipeDoc
    satisfied: int
    total: int

    @property
    def exact(self) -> bool:
        return self.total > 0 and self.satisfied == self.total

    @property
    def recipe_id(self) -> str:
        return self.recipe.id


def _has_excluded(recipe: RecipeDoc, exclusions) -> bool:
    names = recipe.ingredient_names()
    return any(ex in name for ex in exclusions for name in names)


def _has_ingredient(recipe: RecipeDoc, token: str) -> bool:
    return any(token in name for name in recipe.ingredient_names())


def _satisfied(recipe: RecipeDoc, pq: ParsedQuery) -> int:
    """
    속성별 만족 여부 합산. active_attributes()와 같은 항목을 센다.
    - 칼로리 정보 없는 레시피는 칼로리 조건 불만족으로 본다
    """
    n = 0
    if pq.cuisine != "unknown" and pq.cuisine in recipe.cuisines:
        n += 1
    if pq.dietary_restriction != "none" and pq.dietary_restriction in recipe.diets:
        n += 1
    n += sum(1 for t in pq.ingredients if _has_ingredient(recipe, t))
    if pq.difficulty and pq.difficulty == recipe.difficulty:
        n += 1
    if pq.max_total_time is not None and 0 < recipe.total_time <= pq.max_total_time:
        n += 1
    if pq.servings is not None and recipe.servings == pq.servings:
        n += 1
    if (
        pq.max_calories is not None
        and recipe.calories_per_serving is not None
        and recipe.calories_per_serving <= pq.max_calories
    ):
        n += 1
    return n


def rank_matches(recipes: List[RecipeDoc], pq: ParsedQuery) -> List[RecipeMatch]:
    total = len(pq.active_attributes())
    if total == 0:
        # 매칭할 속성이 없으면 매치 없음 → 생성으로
        return []

    out: List[RecipeMatch] = []
    for r in recipes:
        if _has_excluded(r, pq.exclusions):
            continue
        s = _satisfied(r, pq)
        if s > 0:
            out.append(RecipeMatch(recipe=r, satisfied=s, total=total))

    return sorted(out, key=lambda m: (m.satisfied, m.recipe.created_at), reverse=True)


def exact_matches(matches: List[RecipeMatch]) -> List[RecipeMatch]:
    return [m for m in matches if m.exact]


def attribute_clauses(pq: ParsedQuery) -> List[Dict[str, Any]]:
    """
    active_attributes()와 1:1로 대응하는 Mongo 조건들.
    $or로 묶으면 close 후보, $and로 묶으면 exact 후보가 된다.
    """
    clauses: List[Dict[str, Any]] = []
    if pq.cuisine != "unknown":
        clauses.append({"cuisines": pq.cuisine})
    if pq.dietary_restriction != "none":
        clauses.append({"diets": pq.dietary_restriction})
    clauses.extend({"ingredients.name": re.compile(re.escape(t), re.I)} for t in pq.ingredients)
    if pq.difficulty:
        clauses.append({"difficulty": pq.difficulty})
    if pq.max_total_time is not None:
        clauses.append({"total_time": {"$gt": 0, "$lte": pq.max_total_time}})
    if pq.servings is not None:
        clauses.append({"servings": pq.servings})
    if pq.max_calories is not None:
        clauses.append({"calories_per_serving": {"$lte": pq.max_calories}})
    return clauses


async def find_matches(
    store: RecipeStore,
    pq: ParsedQuery,
    limit: int = 10,
    candidate_limit: int = 500,
) -> List[RecipeMatch]:
    """
    속성 조건으로 DB에서 거른 뒤 파이썬에서 판정/정렬.
    - exact 후보(AND)를 먼저, close 후보(OR)로 보충 (오래된 exact도 놓치지 않게)
    - candidate_limit은 필터 뒤에 적용
    빈 리스트 = 어떤 속성도 만족하는 레시피 없음.
    """
    clauses = attribute_clauses(pq)
    if not clauses:
        return []
    exact = await store.candidates(clauses, pq.exclusions, limit=candidate_limit, match_all=True)
    close = await store.candidates(clauses, pq.exclusions, limit=candidate_limit)

    seen: Dict[str, RecipeDoc] = {r.id: r for r in exact}
    for r in close:
        seen.setdefault(r.id, r)
    return rank_matches(list(seen.values()), pq)[:limit]
