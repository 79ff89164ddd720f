# app/db/models/schemas.py
# Pydantic 모델 정의 (API 입출력)
# ResolveIn: 자연어 레시피 요청 (프론트는 camelCase)
# RecipeOut: 프론트 레시피 스키마 (임베딩 제외)
from __future__ import annotations
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from recipe_api.db.models.recipe import Ingredient, RecipeDoc, RecipeDraft, Step


# # 레졸루션 입력
class ResolveIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    prompt_instructions: Optional[str] = Field(default=None, alias="promptInstructions")
    expected_response_format: Optional[str] = Field(default=None, alias="expectedResponseFormat")


# # 프론트 레시피 타입
class RecipeOut(RecipeDraft):
    id: str
    source: str = "user"
    parent_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


def to_recipe_out(doc: RecipeDoc) -> RecipeOut:
    return RecipeOut(**doc.model_dump(exclude={"embedding"}))


# # match_type 별 응답 3종
class ExactMatchOut(BaseModel):
    match_type: Literal["exact"] = "exact"
    recipe: RecipeOut
    alternatives: List[RecipeOut] = Field(default_factory=list)


class CloseMatchOut(BaseModel):
    match_type: Literal["close"] = "close"
    recipes: List[RecipeOut] = Field(default_factory=list)


class GeneratedOut(BaseModel):
    match_type: Literal["generated"] = "generated"
    candidate: RecipeOut
    alternatives: List[str] = Field(default_factory=list)


# # 레시피 수정 (부분 업데이트)
class RecipeUpdateIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    ingredients: Optional[List[Ingredient]] = None
    steps: Optional[List[Step]] = None
    nutritional_info: Optional[str] = None
    allergy_disclaimer: Optional[str] = None
    cuisines: Optional[List[str]] = None
    diets: Optional[List[str]] = None
    appliances: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    images: Optional[List[str]] = None
    difficulty: Optional[str] = None
    prep_time: Optional[int] = None
    cooking_time: Optional[int] = None
    servings: Optional[int] = None
    calories_per_serving: Optional[int] = None


class RecipeListOut(BaseModel):
    recipes: List[RecipeOut] = Field(default_factory=list)
    page: int
    limit: int


class ProfileOut(BaseModel):
    ok: bool
    anonId: str
    profile: Optional[dict] = None


# # 유사도 검색
class SearchIn(BaseModel):
    query: str
    limit: Optional[int] = Field(default=None, ge=1, le=50)


class SearchHitOut(BaseModel):
    recipe: RecipeOut
    score: float
    text_match: bool


class SearchOut(BaseModel):
    results: List[SearchHitOut] = Field(default_factory=list)


# # AI 수정 요청 (프론트는 camelCase)
class ModifyIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    modification_type: str = Field(alias="modificationType")
    additional_notes: Optional[str] = Field(default=None, alias="additionalNotes")


class ModifiedOut(BaseModel):
    original_id: str
    recipe: RecipeOut
