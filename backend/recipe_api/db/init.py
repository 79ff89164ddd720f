# app/db/init.py
# Mongo 연결 유틸: motor
# 전역 커넥션 없이 클라이언트를 만들어 AppContext에 넘긴다

from __future__ import annotations
from typing import Tuple

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from recipe_api.core.config import Settings


async def init_db(settings: Settings) -> Tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    # 앱 시작 시 1회 호출
    client = AsyncIOMotorClient(settings.MONGO_URI)
    db = client[settings.MONGO_DB]

    # 연결 확인 (준비 안 됐으면 예외)
    try:
        await db.command("ping")
    except Exception:
        client.close()
        raise
    return client, db


async def close_db(client: AsyncIOMotorClient | None) -> None:
    # 앱 종료 시 커넥션 정리
    if client:
        client.close()
