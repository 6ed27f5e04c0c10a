from __future__ import annotations

import logging

from gapwatch.core.config import get_settings


_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def resolve_level(name: str, default: int = logging.INFO) -> int:
    # Accept level names in any case; unknown names fall back to the default.
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


def configure_logging() -> None:
    settings = get_settings()
    root = logging.getLogger()
    # Install a single handler so repeated app factories do not duplicate output.
    if not any(getattr(handler, "_gapwatch", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._gapwatch = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(resolve_level(settings.log_level))
