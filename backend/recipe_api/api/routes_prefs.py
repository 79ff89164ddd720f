# app/api/routes_prefs.py
# 사용자 프로필(알레르기/식단) 관리 — 가람 담당
# 레시피 생성 프롬프트의 User Profile 블록으로 들어간다

from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from recipe_api.core.context import AppContext
from recipe_api.core.deps import get_context, get_or_set_anon_id
from recipe_api.core.errors import PersistenceError, ProfileConflict
from recipe_api.db.models.schemas import ProfileOut
from recipe_api.db.models.user_prefs import UserProfileDoc, UserProfileIn

router = APIRouter(prefix="/v1/profile", tags=["profile"])


def _public(doc: Optional[UserProfileDoc]) -> Dict[str, Any]:
    if doc is None:
        return {}
    return doc.model_dump(mode="json", exclude={"deleted_at"})


@router.get("", response_model=ProfileOut)
async def get_profile(
    anon_id: str = Depends(get_or_set_anon_id),
    ctx: AppContext = Depends(get_context),
):
    """프로필 조회 (없거나 삭제됐으면 빈 값)"""
    try:
        doc = await ctx.profiles.get(anon_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.public_message)
    return ProfileOut(ok=True, anonId=anon_id, profile=_public(doc))


@router.put("", response_model=ProfileOut)
async def save_profile(
    payload: UserProfileIn,
    anon_id: str = Depends(get_or_set_anon_id),
    ctx: AppContext = Depends(get_context),
):
    """프로필 저장 (Upsert)"""
    try:
        doc = await ctx.profiles.save(anon_id, payload)
    except ProfileConflict:
        raise HTTPException(status_code=409, detail="email is already used by another profile")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.public_message)
    return ProfileOut(ok=True, anonId=anon_id, profile=_public(doc))


@router.delete("", response_model=ProfileOut)
async def delete_profile(
    anon_id: str = Depends(get_or_set_anon_id),
    ctx: AppContext = Depends(get_context),
):
    """soft delete (deleted_at만 기록)"""
    try:
        deleted = await ctx.profiles.soft_delete(anon_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.public_message)
    if not deleted:
        raise HTTPException(status_code=404, detail="profile not found")
    return ProfileOut(ok=True, anonId=anon_id, profile=None)
