from __future__ import annotations

from copy import copy, deepcopy
from typing import Any
from urllib.parse import unquote_plus

from uvicorn.config import LOGGING_CONFIG
from uvicorn.logging import AccessFormatter as UvicornAccessFormatter

FORMATTER_PATH = "yigedinglia.logging_utils.IdiomAccessFormatter"
WORD_PARAM = "word"


def decode_word_query(full_path: str) -> str:
    """Percent-decode the ``word=`` query value; the rest of the path stays as sent."""
    path, sep, query = full_path.partition("?")
    if not sep:
        return full_path
    pairs: list[str] = []
    for pair in query.split("&"):
        key, eq, value = pair.partition("=")
        if key == WORD_PARAM and eq:
            value = unquote_plus(value, encoding="utf-8", errors="replace")
        pairs.append(f"{key}{eq}{value}")
    return f"{path}?{'&'.join(pairs)}"


class IdiomAccessFormatter(UvicornAccessFormatter):
    """Access log formatter that shows the queried idiom as Chinese text."""

    def formatMessage(self, record):  # type: ignore[override]
        args = record.args
        if not isinstance(args, tuple) or len(args) != 5 or not isinstance(args[2], str):
            return super().formatMessage(record)
        client_addr, method, full_path, http_version, status_code = args
        new_record = copy(record)
        new_record.args = (client_addr, method, decode_word_query(full_path), http_version, status_code)
        return super().formatMessage(new_record)


def build_uvicorn_log_config() -> dict[str, Any]:
    config = deepcopy(LOGGING_CONFIG)
    formatter = config.get("formatters", {}).get("access")
    if isinstance(formatter, dict):
        formatter["()"] = FORMATTER_PATH
    return config
