# 앱 컨텍스트: 스타트업에서 1회 구성해 app.state에 붙인다
# 전역 DB 핸들/클라이언트 대신 라우터가 요청에서 꺼내 쓴다

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from recipe_api.core.config import Settings
from recipe_api.db.indexes import RECIPES, USER_PROFILES
from recipe_api.services.embeddings import EmbeddingClient
from recipe_api.services.generation import GenerationClient
from recipe_api.services.profiles import ProfileStore
from recipe_api.services.recipe_store import RecipeStore
from recipe_api.services.resolver import RecipeResolver


@dataclass
class AppContext:
    settings: Settings
    db: Any
    recipes: RecipeStore
    profiles: ProfileStore
    generation: GenerationClient
    embeddings: EmbeddingClient
    resolver: RecipeResolver
    client: Any = None   # AsyncIOMotorClient (종료 시 close)


def build_context(
    settings: Settings,
    db: Any,
    client: Any = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AppContext:
    recipes = RecipeStore(db[RECIPES], embedding_dim=settings.EMBEDDING_DIM)
    generation = GenerationClient(settings, http_client=http_client)
    embeddings = EmbeddingClient(settings, http_client=http_client)
    return AppContext(
        settings=settings,
        db=db,
        recipes=recipes,
        profiles=ProfileStore(db[USER_PROFILES]),
        generation=generation,
        embeddings=embeddings,
        resolver=RecipeResolver(recipes, generation, embeddings, settings),
        client=client,
    )
