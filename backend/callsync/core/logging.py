import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("callsync").setLevel(level.upper())
    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
