# 로깅 설정: 스타트업에서 한 번 호출
import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # httpx 요청 로그는 너무 시끄러움
    logging.getLogger("httpx").setLevel(logging.WARNING)
