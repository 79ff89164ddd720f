# app/main.py
# FastAPI 앱 초기화 및 라우터 설정
# 라우터는 각 기능별로 분리하여 관리

from __future__ import annotations

import logging
from asyncio import sleep
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from recipe_api.api.routes_prefs import router as prefs_router       # 가람: 사용자 프로필
from recipe_api.api.routes_recipes import router as recipes_router   # 지용: 레시피 CRUD
from recipe_api.api.routes_resolve import router as resolve_router   # 지용: 레졸루션
from recipe_api.core.config import Settings, get_settings
from recipe_api.core.context import AppContext, build_context
from recipe_api.core.logs import setup_logging
from recipe_api.db.indexes import ensure_indexes
from recipe_api.db.init import close_db, init_db

log = logging.getLogger(__name__)

DB_INIT_TRIES = 20


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    # context를 주면(테스트) DB 연결/인덱스 과정을 건너뛴다
    settings = settings or (context.settings if context else get_settings())
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Recipe Resolution API", version="0.1.0")
    app.state.ctx = context

    # CORS: 프론트 허용 + 쿠키 전달
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 앱 시작/종료 이벤트 핸들러
    @app.on_event("startup")
    async def on_startup() -> None:
        if app.state.ctx is not None:
            return

        # 1) DB 먼저 붙는다 (최대 20회, 1초 간격)
        client = db = None
        for i in range(DB_INIT_TRIES):
            try:
                client, db = await init_db(settings)
                log.info("db ready")
                break
            except Exception as e:
                log.warning("db init retry %d: %s", i + 1, e)
                await sleep(1.0)
        if db is None:
            log.error("db init failed after %d retries", DB_INIT_TRIES)
            return

        # 2) 인덱스 보장
        try:
            await ensure_indexes(db)
            log.info("indexes ensured")
        except Exception as e:
            log.exception("ensure_indexes failed: %s", e)

        app.state.ctx = build_context(settings, db, client=client)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        # 몽고db 커넥션 정리
        ctx = app.state.ctx
        if ctx is not None:
            await close_db(ctx.client)

    @app.get("/health")
    async def health(request: Request):
        # 간단한 헬스체크 + DB ping
        ctx = request.app.state.ctx
        if ctx is None:
            # DB 초기화 실패(또는 아직 시작 전): API 라우트는 전부 503
            return {"status": "degraded", "db": "unavailable"}
        ok = {"status": "ok", "db": "ok"}
        try:
            await ctx.db.command("ping")
        except Exception as e:
            log.warning("health db ping failed: %s", e)
            ok.update(status="degraded", db="error")
        return ok

    # 라우터 prefix는 각 파일 내에서 정의함 , 중복 prefix 금지
    # resolve를 먼저 (POST /v1/recipes/resolve)
    app.include_router(resolve_router)
    app.include_router(recipes_router)
    app.include_router(prefs_router)
    return app


app = create_app()
