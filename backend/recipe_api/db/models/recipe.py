# 레시피 표준 스키마 — 지용 담당
# RecipeDraft: 사용자 등록/모델 생성 공통 본문
# RecipeDoc: DB 저장 문서 (id/임베딩/타임스탬프 포함)
from __future__ import annotations
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class Ingredient(BaseModel):
    name: str
    amount: Optional[Union[float, str]] = None   # 모델이 "1/2" 같은 문자열을 주기도 함
    unit: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return (v or "").strip()


class Step(BaseModel):
    order: int
    description: str


class RecipeDraft(BaseModel):
    title: str
    description: str = ""
    ingredients: List[Ingredient] = Field(default_factory=list)
    steps: List[Step] = Field(default_factory=list)
    nutritional_info: str = ""
    allergy_disclaimer: str = ""
    cuisines: List[str] = Field(default_factory=list)
    diets: List[str] = Field(default_factory=list)
    appliances: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    difficulty: str = ""
    prep_time: int = 0        # 분
    cooking_time: int = 0     # 분
    servings: int = 0
    calories_per_serving: Optional[int] = None
    approved: bool = False

    @field_validator("cuisines", "diets", "appliances", "tags", mode="before")
    @classmethod
    def _norm_refs(cls, v):
        # 참조 이름들은 소문자/중복 제거로 저장 (순서 보존)
        names = [str(x).strip().lower() for x in (v or []) if x and str(x).strip()]
        return list(dict.fromkeys(names))

    @field_validator("difficulty", mode="before")
    @classmethod
    def _norm_difficulty(cls, v):
        return (v or "").strip().lower()

    @field_validator("steps", mode="before")
    @classmethod
    def _steps_from_strings(cls, v):
        # ["썰기", "굽기"] 처럼 문자열 배열로 와도 순번을 붙여 수용
        out = []
        for i, s in enumerate(v or [], start=1):
            out.append({"order": i, "description": s} if isinstance(s, str) else s)
        return out

    @property
    def total_time(self) -> int:
        return (self.prep_time or 0) + (self.cooking_time or 0)

    def ingredient_names(self) -> List[str]:
        return [i.name.lower() for i in self.ingredients if i.name]


class RecipeDoc(RecipeDraft):
    id: str
    source: str = "user"        # "user" | "generated" | "modified"
    parent_id: Optional[str] = None   # AI 수정본이면 원본 레시피 id
    embedding: Optional[List[float]] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @classmethod
    def from_mongo(cls, doc: dict) -> "RecipeDoc":
        d = dict(doc)
        d["id"] = str(d.pop("_id", d.get("id", "")))
        d.pop("total_time", None)
        return cls(**d)

    def to_mongo(self) -> dict:
        d = self.model_dump()
        d["_id"] = d.pop("id")
        # 시간 조건을 DB에서 거르려고 합계도 저장 (from_mongo에서 버림)
        d["total_time"] = self.total_time
        return d
