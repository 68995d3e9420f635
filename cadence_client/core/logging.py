import logging

logger = logging.getLogger("cadence_client")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(format=LOG_FORMAT, level=level)
    logging.getLogger().setLevel(level)
    # httpx는 요청마다 INFO 로그를 남기므로 한 단계 낮춘다
    logging.getLogger("httpx").setLevel(max(logging.getLogger().level, logging.WARNING))
