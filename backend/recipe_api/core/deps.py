# 공용 의존성/헬퍼 (익명 사용자 쿠키 발급, 앱 컨텍스트 등)
import uuid
from fastapi import HTTPException, Request, Response

from recipe_api.core.context import AppContext
from recipe_api.core.errors import ResolutionError

COOKIE = "anon_id"
MAX_AGE = 60 * 60 * 24 * 365 * 2  # 2년

def get_or_set_anon_id(request: Request, response: Response) -> str:
    # 쿠키 없으면 발급, 있으면 그대로 사용
    v = request.cookies.get(COOKIE)
    if not v:
        v = uuid.uuid4().hex
        response.set_cookie(COOKIE, v, max_age=MAX_AGE, httponly=True, samesite="lax")
    return v

def get_context(request: Request) -> AppContext:
    # 스타트업에서 붙인 컨텍스트. DB 붙기 전이면 503
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="service is starting up")
    return ctx

def http_error(err: ResolutionError) -> HTTPException:
    # 5xx는 일반 메시지만 (업스트림 본문 노출 금지)
    detail = str(err) if err.status_code < 500 else err.public_message
    return HTTPException(status_code=err.status_code, detail=detail)
