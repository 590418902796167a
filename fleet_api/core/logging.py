"""Structured logging facade used by the SOS pipeline."""

from __future__ import annotations

import logging
from typing import Any, Protocol


class AlertLogger(Protocol):
    def log_info(self, message: str, **context: Any) -> None: ...

    def log_error(self, message: str, **context: Any) -> None: ...


def _format(message: str, context: dict[str, Any]) -> str:
    if not context:
        return message
    pairs = " ".join(f"{key}={context[key]!r}" for key in sorted(context))
    return f"{message} {pairs}"


class StdlibAlertLogger:
    """AlertLogger backed by a standard library logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("fleet_api.sos")

    def log_info(self, message: str, **context: Any) -> None:
        self._logger.info(_format(message, context))

    def log_error(self, message: str, **context: Any) -> None:
        self._logger.error(_format(message, context))
