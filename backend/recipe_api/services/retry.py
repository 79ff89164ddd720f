# app/services/retry.py
# 공용: 고정 간격 재시도 (지터/지수 백오프 없음)
# - 마지막 시도 뒤에는 쉬지 않는다
# - CancelledError는 잡지 않으므로 호출자가 끊기면 sleep 중이라도 바로 중단

from __future__ import annotations
from asyncio import sleep
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


async def retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    label: str = "call",
) -> T:
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    last: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except retry_on as e:
            last = e
            log.warning("%s failed (attempt %d/%d): %s", label, attempt, max_attempts, e)
            if attempt < max_attempts:
                await sleep(delay)
    # 마지막 예외 재던지기
    if last is None:
        raise RuntimeError(f"{label}: retry loop ended without a result")
    raise last
