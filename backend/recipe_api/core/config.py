# 환경변수 로딩 (.env)
# 시크릿/엔드포인트는 전부 여기로만 들어온다 (소스에 리터럴 금지)
from __future__ import annotations
from enum import Enum
from typing import List, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Env(Enum):
    local = "local"
    dev = "dev"
    prod = "prod"


class EmbeddingMode(Enum):
    live = "live"
    # 테스트 전용: 네트워크 없이 고정 벡터 반환
    placeholder = "placeholder"


class Settings(BaseSettings):
    APP_ENV: Env = Env.local
    LOG_LEVEL: str = "INFO"

    MONGO_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGO_DB: str = "recipes"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # 레시피 생성 (OpenAI 호환 chat completions)
    GENERATION_API_BASE: Optional[str] = None
    GENERATION_API_KEY: Optional[str] = None
    GENERATION_MODEL: str = "deepseek-chat"
    GENERATION_TIMEOUT: float = 60.0

    # 임베딩
    EMBEDDING_API_BASE: Optional[str] = None
    EMBEDDING_API_KEY: Optional[str] = None
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_TIMEOUT: float = 30.0
    EMBEDDING_MODE: EmbeddingMode = EmbeddingMode.live
    EMBEDDING_DIM: Optional[int] = None  # 설정 시 저장 전에 길이 검사

    # 고정 간격 재시도
    RETRY_ATTEMPTS: int = 3
    RETRY_DELAY: float = 2.0

    # 매칭 후보/결과 수
    MATCH_CANDIDATE_LIMIT: int = 500
    MATCH_RESULT_LIMIT: int = 10
    SEARCH_RESULT_LIMIT: int = 10

    class Config:
        env_file = ".env"

    @model_validator(mode="after")
    def _no_placeholder_in_prod(self) -> "Settings":
        if self.APP_ENV is Env.prod and self.EMBEDDING_MODE is EmbeddingMode.placeholder:
            raise ValueError("EMBEDDING_MODE=placeholder is a test setting and cannot run with APP_ENV=prod")
        return self


def get_settings() -> Settings:
    # 앱 스타트업에서 1회 생성해서 AppContext로 넘긴다
    return Settings()
