# app/services/modifier.py
# 기존 레시피 AI 수정 — 지용 담당
# 원본 조회 → 수정 프롬프트 → 생성 → 임베딩 → 새 레시피로 저장 (source="modified", parent_id=원본)
# 원본 문서는 건드리지 않는다. 중간에 실패하면 아무것도 저장하지 않음

from __future__ import annotations
import logging
from typing import Optional

from recipe_api.core.errors import EmptyQueryError
from recipe_api.db.models.recipe import RecipeDoc
from recipe_api.services.embeddings import EmbeddingClient, recipe_embedding_text
from recipe_api.services.generation import GenerationClient, parse_generated_recipe
from recipe_api.services.prompts import build_modification_prompt
from recipe_api.services.recipe_store import RecipeStore

log = logging.getLogger(__name__)


async def modify_recipe(
    store: RecipeStore,
    generation: GenerationClient,
    embeddings: EmbeddingClient,
    recipe_id: str,
    modification_type: str,
    notes: Optional[str] = None,
) -> RecipeDoc:
    if not (modification_type or "").strip():
        raise EmptyQueryError("modification type must not be empty")

    original = await store.get(recipe_id)   # 없으면 RecipeNotFound
    prompt = build_modification_prompt(original, modification_type, notes)

    raw = await generation.generate(
        prompt,
        attributes={"modification_type": modification_type.strip(), "recipe_id": original.id},
    )
    draft = parse_generated_recipe(raw).candidate.model_copy(update={"approved": False})
    if draft.title.strip().lower() == original.title.strip().lower():
        log.warning("modified recipe kept the original title id=%s", original.id)

    vector = await embeddings.embed(recipe_embedding_text(draft))
    doc = await store.insert(draft, embedding=vector, source="modified", parent_id=original.id)
    log.info("recipe modified id=%s parent=%s type=%s", doc.id, original.id, modification_type.strip())
    return doc
