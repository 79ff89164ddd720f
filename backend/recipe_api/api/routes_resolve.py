# app/api/routes_resolve.py
# 자연어 레시피 요청 → DB 매칭 또는 모델 생성 — 지용 담당

from __future__ import annotations
import logging
from typing import Union

from fastapi import APIRouter, Depends, HTTPException

from recipe_api.core.context import AppContext
from recipe_api.core.deps import get_context, get_or_set_anon_id, http_error
from recipe_api.core.errors import PersistenceError
from recipe_api.db.models.schemas import (
    CloseMatchOut,
    ExactMatchOut,
    GeneratedOut,
    ResolveIn,
    to_recipe_out,
)
from recipe_api.services.resolver import Resolution

log = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/recipes", tags=["resolve"])


def to_response(res: Resolution) -> Union[ExactMatchOut, CloseMatchOut, GeneratedOut]:
    if res.failed:
        raise http_error(res.error)

    if res.match_type == "exact":
        return ExactMatchOut(
            recipe=to_recipe_out(res.recipe),
            alternatives=[to_recipe_out(r) for r in res.alternatives],
        )
    if res.match_type == "close":
        return CloseMatchOut(recipes=[to_recipe_out(r) for r in res.recipes])
    return GeneratedOut(
        candidate=to_recipe_out(res.candidate),
        alternatives=res.generated_alternatives,
    )


@router.post("/resolve", response_model=Union[ExactMatchOut, CloseMatchOut, GeneratedOut])
async def resolve_recipe(
    payload: ResolveIn,
    anon_id: str = Depends(get_or_set_anon_id),
    ctx: AppContext = Depends(get_context),
):
    """질의 → exact / close / generated 중 하나로 응답"""
    try:
        profile = await ctx.profiles.get(anon_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.public_message)
    if profile is not None:
        await ctx.profiles.touch(anon_id)

    res = await ctx.resolver.resolve(
        payload.query,
        instructions=payload.prompt_instructions,
        expected_format=payload.expected_response_format,
        profile=profile.prompt_entries() if profile else None,
    )
    return to_response(res)
