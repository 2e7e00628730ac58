from __future__ import annotations

import json
import logging
import os
import sys
import time
from typing import Iterable, Optional, TextIO, Tuple


# Credentials that must never reach a log line verbatim.
SECRET_ENV_VARS = ("CLOUDINARY_API_SECRET", "CLOUDINARY_API_KEY", "SUPABASE_ANON_KEY")
REDACTED = "***"


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:
      { "t": 1712000000000, "lvl": "INFO", "name": "media.uploader", "msg": "...", "extra": {...} }

    Any string in `secrets` is masked in the message and the traceback.
    """

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets: Tuple[str, ...] = ()
        self.add_secrets(secrets)

    def add_secrets(self, secrets: Iterable[str]) -> None:
        merged = set(self.secrets) | {s for s in secrets if s}
        # longest first so a secret containing another is masked whole
        self.secrets = tuple(sorted(merged, key=len, reverse=True))

    def _mask(self, text: str) -> str:
        for s in self.secrets:
            text = text.replace(s, REDACTED)
        return text

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "t": int(time.time() * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "msg": self._mask(record.getMessage()),
        }
        # logger.info(..., extra={"extra": {...}})
        ctx = getattr(record, "extra", None)
        if isinstance(ctx, dict):
            payload["extra"] = ctx
        if record.exc_info:
            payload["exc_info"] = self._mask(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    lvl = logging.getLevelName(name)
    return lvl if isinstance(lvl, int) else logging.INFO


def setup_logging(
    level: Optional[str] = None,
    *,
    secrets: Iterable[str] = (),
    stream: Optional[TextIO] = None,
) -> None:
    """
    Install the JSON handler on the root logger once. Later calls only apply an
    explicit `level` and register more `secrets`.

    Level: `level` arg, else env LOG_LEVEL, else INFO.
    Secrets: `secrets` plus the values of SECRET_ENV_VARS found in the environment.
    """
    root = logging.getLogger()
    if getattr(root, "_travel_configured", False):
        if level:
            root.setLevel(_resolve_level(level))
        for h in root.handlers:
            if isinstance(h.formatter, JsonFormatter):
                h.formatter.add_secrets(secrets)
        return

    masked = list(secrets) + [os.environ.get(v, "") for v in SECRET_ENV_VARS]
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter(masked))

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))
    # requests' connection pool is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    root._travel_configured = True  # type: ignore[attr-defined]


def get_logger(name: str) -> logging.Logger:
    """Module logger; configures the root with defaults on first use."""
    setup_logging()
    return logging.getLogger(name)
