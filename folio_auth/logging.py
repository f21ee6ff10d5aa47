import logging
import sys
import time

from pythonjsonlogger.json import JsonFormatter

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# chatty third-party loggers; auth events come from folio_auth.*
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class UTCJsonFormatter(JsonFormatter):
    converter = time.gmtime


def build_formatter(service: str | None = None) -> UTCJsonFormatter:
    return UTCJsonFormatter(
        _FORMAT,
        rename_fields={"levelname": "level", "name": "logger"},
        static_fields={"service": service} if service else None,
    )


def setup_logging(level: str = "INFO", *, service: str | None = None) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(service))
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel("WARNING")
