# app/db/models/user_prefs.py
# 사용자 프로필: 레시피 생성 프롬프트에 들어가는 알레르기/식단 정보
from __future__ import annotations
from typing import Any, List, Optional, Tuple
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

# 프롬프트에 들어가는 키 순서 (고정)
PROFILE_PROMPT_KEYS = ("allergens", "dietary_restrictions", "disliked_ingredients", "max_cook_minutes")


# 입력 바디 (프론트에서 보내는 값)
class UserProfileIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    allergies: List[str] = []              # 예: ["peanuts","milk"]
    diet: Optional[str] = None             # 예: "vegetarian"
    disliked_ingredients: List[str] = []
    max_cook_minutes: Optional[int] = Field(default=None, ge=1)

    @field_validator("allergies", "disliked_ingredients", mode="before")
    @classmethod
    def _norm_list(cls, v):
        names = [str(x).strip().lower() for x in (v or []) if x and str(x).strip()]
        return list(dict.fromkeys(names))

    @field_validator("diet", "email", mode="before")
    @classmethod
    def _lower(cls, v):
        return v.strip().lower() if isinstance(v, str) and v.strip() else None


# DB 저장 문서
class UserProfileDoc(UserProfileIn):
    anon_id: str
    last_active: Optional[datetime] = None
    deleted_at: Optional[datetime] = None   # soft delete
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def prompt_entries(self) -> List[Tuple[str, Any]]:
        # 값이 있는 항목만, PROFILE_PROMPT_KEYS 순서 그대로
        values = {
            "allergens": self.allergies,
            "dietary_restrictions": self.diet,
            "disliked_ingredients": self.disliked_ingredients,
            "max_cook_minutes": self.max_cook_minutes,
        }
        return [(k, values[k]) for k in PROFILE_PROMPT_KEYS if values[k] not in (None, [], "")]
