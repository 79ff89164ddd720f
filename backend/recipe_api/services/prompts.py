# app/services/prompts.py
# 레시피 생성용 합성 프롬프트
# 순서 고정: 헤더 → 질의 → 지시문 → 응답 스키마 → 프로필 → 푸터

from __future__ import annotations
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple, Union

from recipe_api.db.models.recipe import Ingredient, RecipeDraft

PROMPT_HEADER = "=== Composite Prompt for Recipe Resolution ==="
PROMPT_FOOTER = "=== End of Prompt ==="

DEFAULT_PROMPT_INSTRUCTIONS = (
    "Act as a professional personal chef. Provide detailed, step-by-step recipes "
    "with clear instructions and precise measurements."
)

# 응답 JSON 모양 (권고용 설명): RecipeDraft 필드와 맞춘다
DEFAULT_EXPECTED_RESPONSE_FORMAT = (
    '{"title": string, "description": string, '
    '"ingredients": [{"name": string, "amount": number, "unit": string}], '
    '"steps": [{"order": number, "description": string}], '
    '"nutritional_info": string, "allergy_disclaimer": string, '
    '"cuisines": [string], "diets": [string], "appliances": [string], '
    '"tags": [string], "images": [string], "difficulty": string, '
    '"prep_time": number, "cooking_time": number, "servings": number, '
    '"calories_per_serving": number, "approved": boolean}'
)

Profile = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]


def _profile_items(profile: Optional[Profile]) -> Iterable[Tuple[str, Any]]:
    # dict는 삽입 순서, 시퀀스는 주어진 순서 그대로
    if not profile:
        return ()
    if isinstance(profile, Mapping):
        return profile.items()
    return profile


def _format_value(v: Any) -> str:
    if isinstance(v, (list, tuple, set, frozenset)):
        items = sorted(v) if isinstance(v, (set, frozenset)) else v
        return ", ".join(str(x) for x in items)
    return str(v)


def build_composite_prompt(
    query: str,
    instructions: Optional[str] = None,
    expected_format: Optional[str] = None,
    profile: Optional[Profile] = None,
) -> str:
    instructions = instructions if instructions and instructions.strip() else DEFAULT_PROMPT_INSTRUCTIONS
    expected_format = (
        expected_format if expected_format and expected_format.strip() else DEFAULT_EXPECTED_RESPONSE_FORMAT
    )

    lines = [
        PROMPT_HEADER,
        "",
        "User Query:",
        query,
        "",
        "Prompt Instructions:",
        instructions,
        "",
        "Expected Response Format:",
        expected_format,
        "",
        "User Profile:",
    ]
    lines.extend(f" - {k}: {_format_value(v)}" for k, v in _profile_items(profile))
    lines.extend(["", PROMPT_FOOTER])
    return "\n".join(lines)


# -----------------------------------------------------------------------------
# 기존 레시피 AI 수정용 프롬프트
# 원본을 그대로 풀어 쓰고, 바뀐 내용이 드러나는 새 제목을 요구한다
# -----------------------------------------------------------------------------

MODIFY_HEADER = "=== Recipe Modification Request ==="


def _amount(i: Ingredient) -> str:
    a = i.amount
    if isinstance(a, float) and a.is_integer():
        a = int(a)   # 400.0 → 400
    parts = [str(a) if a not in (None, "") else "", i.unit, i.name]
    return " ".join(p for p in parts if p)


def build_modification_prompt(recipe: RecipeDraft, modification_type: str, notes: Optional[str] = None) -> str:
    lines = [
        MODIFY_HEADER,
        "",
        f"Modification Type: {modification_type.strip()}",
        f"Additional Notes: {(notes or '').strip() or 'none'}",
        "",
        "You MUST give the modified recipe a new title that reflects the modification.",
        "",
        "Original Recipe:",
        f"Title: {recipe.title}",
        f"Description: {recipe.description}",
        f"Servings: {recipe.servings}",
        f"Prep Time: {recipe.prep_time} minutes",
        f"Cook Time: {recipe.cooking_time} minutes",
        f"Difficulty: {recipe.difficulty or 'unknown'}",
        "",
        "Ingredients:",
    ]
    lines.extend(f" - {_amount(i)}" for i in recipe.ingredients)
    lines.extend(["", "Steps:"])
    lines.extend(f" {s.order}. {s.description}" for s in recipe.steps)
    lines.extend([
        "",
        f"Nutrition: {recipe.nutritional_info or 'unknown'}",
        f"Tags: {_format_value(recipe.tags)}",
        "",
        "Expected Response Format:",
        DEFAULT_EXPECTED_RESPONSE_FORMAT,
        "",
        PROMPT_FOOTER,
    ])
    return "\n".join(lines)
