# 레졸루션 파이프라인 예외: 라우터에서 HTTP 상태로 변환
from __future__ import annotations
from typing import Optional


class ResolutionError(Exception):
    # 요청 단위 실패. 프로세스를 죽이지 않는다
    status_code = 500
    public_message = "recipe resolution failed"


class EmptyQueryError(ResolutionError):
    status_code = 400
    public_message = "query must not be empty"


class ConfigurationError(ResolutionError):
    # 키/엔드포인트 미설정
    status_code = 503
    public_message = "recipe generation is not configured"


class UpstreamError(ResolutionError):
    """재시도 소진 후 외부 API 실패. 원인은 로그에만 남기고 응답에는 노출하지 않음."""

    status_code = 502

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class GenerationFailedError(UpstreamError):
    public_message = "recipe generation is temporarily unavailable"


class EmbeddingFailedError(UpstreamError):
    public_message = "recipe embedding is temporarily unavailable"


class PersistenceError(ResolutionError):
    status_code = 503
    public_message = "recipe storage is temporarily unavailable"


class RecipeNotFound(Exception):
    pass


class ProfileConflict(Exception):
    # 다른 프로필이 이미 같은 email을 씀 (유니크 인덱스)
    pass
