# app/api/routes_recipes.py
# 레시피 등록/조회/수정/승인, 유사도 검색, AI 수정 — 지용 담당

from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from recipe_api.core.context import AppContext
from recipe_api.core.deps import get_context, http_error
from recipe_api.core.errors import PersistenceError, RecipeNotFound, ResolutionError
from recipe_api.db.models.recipe import RecipeDraft
from recipe_api.db.models.schemas import (
    ModifiedOut,
    ModifyIn,
    RecipeListOut,
    RecipeOut,
    RecipeUpdateIn,
    SearchHitOut,
    SearchIn,
    SearchOut,
    to_recipe_out,
)
from recipe_api.services.modifier import modify_recipe
from recipe_api.services.search import search_recipes

log = logging.getLogger(__name__)

# 메인 라우터
router = APIRouter(prefix="/v1/recipes", tags=["recipes"])


@router.post("", response_model=RecipeOut, status_code=201)
async def create_recipe(payload: RecipeDraft, ctx: AppContext = Depends(get_context)):
    """사용자 레시피 등록 (승인 전 상태로 저장)"""
    if not payload.title.strip():
        raise HTTPException(status_code=400, detail="recipe title is required")
    draft = payload.model_copy(update={"approved": False})
    try:
        doc = await ctx.recipes.insert(draft, source="user")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.public_message)
    return to_recipe_out(doc)


@router.get("", response_model=RecipeListOut)
async def list_recipes(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    approved: Optional[bool] = Query(None, description="승인 여부 필터"),
    ctx: AppContext = Depends(get_context),
):
    """최신순 목록"""
    try:
        docs = await ctx.recipes.list(page=page, limit=limit, approved=approved)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.public_message)
    return RecipeListOut(recipes=[to_recipe_out(d) for d in docs], page=page, limit=limit)


@router.get("/{recipe_id}", response_model=RecipeOut)
async def get_recipe(recipe_id: str, ctx: AppContext = Depends(get_context)):
    try:
        doc = await ctx.recipes.get(recipe_id)
    except RecipeNotFound:
        raise HTTPException(status_code=404, detail="recipe not found")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.public_message)
    return to_recipe_out(doc)


@router.put("/{recipe_id}", response_model=RecipeOut)
async def update_recipe(
    recipe_id: str,
    payload: RecipeUpdateIn,
    ctx: AppContext = Depends(get_context),
):
    """보낸 필드만 수정"""
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="no fields to update")
    if "title" in fields and not (fields["title"] or "").strip():
        raise HTTPException(status_code=400, detail="recipe title is required")
    try:
        doc = await ctx.recipes.update(recipe_id, fields)
    except RecipeNotFound:
        raise HTTPException(status_code=404, detail="recipe not found")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.public_message)
    return to_recipe_out(doc)


@router.post("/{recipe_id}/approve", response_model=RecipeOut)
async def approve_recipe(recipe_id: str, ctx: AppContext = Depends(get_context)):
    """생성/등록 레시피 승인"""
    try:
        doc = await ctx.recipes.approve(recipe_id)
    except RecipeNotFound:
        raise HTTPException(status_code=404, detail="recipe not found")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.public_message)
    log.info("recipe approved id=%s", recipe_id)
    return to_recipe_out(doc)


@router.post("/search", response_model=SearchOut)
async def search(payload: SearchIn, ctx: AppContext = Depends(get_context)):
    """질의 임베딩 유사도 검색 (텍스트 일치 우선)"""
    limit = payload.limit or ctx.settings.SEARCH_RESULT_LIMIT
    try:
        hits = await search_recipes(ctx.recipes, ctx.embeddings, payload.query, limit=limit)
    except ResolutionError as e:
        raise http_error(e)
    return SearchOut(
        results=[SearchHitOut(recipe=to_recipe_out(h.recipe), score=h.score, text_match=h.text_match) for h in hits]
    )


@router.post("/{recipe_id}/modify-with-ai", response_model=ModifiedOut, status_code=201)
async def modify_with_ai(recipe_id: str, payload: ModifyIn, ctx: AppContext = Depends(get_context)):
    """원본은 그대로 두고 수정본을 새 레시피(승인 전)로 저장"""
    try:
        doc = await modify_recipe(
            ctx.recipes,
            ctx.generation,
            ctx.embeddings,
            recipe_id,
            payload.modification_type,
            payload.additional_notes,
        )
    except RecipeNotFound:
        raise HTTPException(status_code=404, detail="recipe not found")
    except ResolutionError as e:
        raise http_error(e)
    return ModifiedOut(original_id=recipe_id, recipe=to_recipe_out(doc))
