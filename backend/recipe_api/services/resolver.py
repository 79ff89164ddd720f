# app/services/resolver.py
# 레시피 레졸루션 파이프라인 — 지용 담당
# 질의 파싱 → DB 매칭 (있으면 종료) → 프롬프트 → 생성 → 임베딩 → 저장
# 중간 단계에서 실패하면 아무것도 저장하지 않고 Failed로 끝낸다

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from recipe_api.core.config import Settings
from recipe_api.core.errors import ResolutionError
from recipe_api.db.models.recipe import RecipeDoc
from recipe_api.services.embeddings import EmbeddingClient, recipe_embedding_text
from recipe_api.services.generation import GenerationClient, parse_generated_recipe
from recipe_api.services.matcher import RecipeMatch, find_matches
from recipe_api.services.prompts import Profile, build_composite_prompt
from recipe_api.services.query_parser import ParsedQuery, parse_recipe_query
from recipe_api.services.recipe_store import RecipeStore

log = logging.getLogger(__name__)


class ResolutionState(Enum):
    PARSING_QUERY = "ParsingQuery"
    SEARCHING_MATCHES = "SearchingMatches"
    MATCH_FOUND = "MatchFound"
    NO_MATCH = "NoMatch"
    BUILDING_PROMPT = "BuildingPrompt"
    GENERATING = "Generating"
    EMBEDDING = "Embedding"
    PERSISTING = "Persisting"
    DONE = "Done"
    FAILED = "Failed"


TERMINAL_STATES = {ResolutionState.MATCH_FOUND, ResolutionState.DONE, ResolutionState.FAILED}


@dataclass
class Resolution:
    states: List[ResolutionState] = field(default_factory=list)
    parsed: Optional[ParsedQuery] = None
    match_type: Optional[str] = None          # "exact" | "close" | "generated"
    recipe: Optional[RecipeDoc] = None        # exact
    alternatives: List[RecipeDoc] = field(default_factory=list)
    recipes: List[RecipeDoc] = field(default_factory=list)    # close
    candidate: Optional[RecipeDoc] = None     # generated
    generated_alternatives: List[str] = field(default_factory=list)
    prompt: Optional[str] = None
    error: Optional[ResolutionError] = None

    @property
    def state(self) -> Optional[ResolutionState]:
        return self.states[-1] if self.states else None

    @property
    def failed(self) -> bool:
        return self.state is ResolutionState.FAILED

    def enter(self, state: ResolutionState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"resolution already finished in {self.state.value}")
        log.debug("resolution -> %s", state.value)
        self.states.append(state)

    def fail(self, error: ResolutionError) -> "Resolution":
        self.error = error
        self.enter(ResolutionState.FAILED)
        return self


class RecipeResolver:
    def __init__(
        self,
        store: RecipeStore,
        generation: GenerationClient,
        embeddings: EmbeddingClient,
        settings: Settings,
    ) -> None:
        self.store = store
        self.generation = generation
        self.embeddings = embeddings
        self.settings = settings

    def _from_matches(self, res: Resolution, matches: List[RecipeMatch]) -> Resolution:
        res.enter(ResolutionState.MATCH_FOUND)
        if matches[0].exact:
            res.match_type = "exact"
            res.recipe = matches[0].recipe
            res.alternatives = [m.recipe for m in matches[1:]]
        else:
            res.match_type = "close"
            res.recipes = [m.recipe for m in matches]
        log.info("resolution matched %s (%d recipes)", res.match_type, len(matches))
        return res

    async def resolve(
        self,
        query: str,
        instructions: Optional[str] = None,
        expected_format: Optional[str] = None,
        profile: Optional[Profile] = None,
    ) -> Resolution:
        res = Resolution()
        try:
            res.enter(ResolutionState.PARSING_QUERY)
            res.parsed = parse_recipe_query(query)

            res.enter(ResolutionState.SEARCHING_MATCHES)
            matches = await find_matches(
                self.store,
                res.parsed,
                limit=self.settings.MATCH_RESULT_LIMIT,
                candidate_limit=self.settings.MATCH_CANDIDATE_LIMIT,
            )
            if matches:
                return self._from_matches(res, matches)
            res.enter(ResolutionState.NO_MATCH)

            res.enter(ResolutionState.BUILDING_PROMPT)
            res.prompt = build_composite_prompt(query, instructions, expected_format, profile)

            res.enter(ResolutionState.GENERATING)
            raw = await self.generation.generate(res.prompt, attributes=res.parsed.as_attributes())
            generated = parse_generated_recipe(raw)

            res.enter(ResolutionState.EMBEDDING)
            vector = await self.embeddings.embed(recipe_embedding_text(generated.candidate))

            res.enter(ResolutionState.PERSISTING)
            res.candidate = await self.store.insert(generated.candidate, embedding=vector, source="generated")
            res.generated_alternatives = generated.alternatives
            res.match_type = "generated"

            res.enter(ResolutionState.DONE)
            return res
        except ResolutionError as e:
            stage = res.state.value if res.state else "?"
            if e.status_code >= 500:
                # 원인은 로그에만
                cause = getattr(e, "cause", None) or e.__cause__
                log.error("resolution failed at %s: %s (cause: %r)", stage, e, cause)
            else:
                log.info("resolution rejected at %s: %s", stage, e)
            return res.fail(e)
