"""Telemetry — logging dependency passed explicitly into every service."""

import logging
from typing import Any


class Telemetry:
    """Thin wrapper over a ``logging.Logger`` with structured helpers for
    upstream and generation calls.

    Services receive an instance through their constructor instead of
    reaching for a module-level logger, so tests can capture or silence
    output per service.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("tripweaver")

    def child(self, suffix: str) -> "Telemetry":
        return Telemetry(self.logger.getChild(suffix))

    def debug(self, msg: str, *args: Any) -> None:
        self.logger.debug(msg, *args)

    def info(self, msg: str, *args: Any) -> None:
        self.logger.info(msg, *args)

    def warning(self, msg: str, *args: Any) -> None:
        self.logger.warning(msg, *args)

    def error(self, msg: str, *args: Any, exc_info: bool = False) -> None:
        self.logger.error(msg, *args, exc_info=exc_info)

    def external_api(
        self,
        provider: str,
        operation: str,
        success: bool,
        elapsed_ms: int,
        **extra: Any,
    ) -> None:
        """Record the outcome of one upstream provider call."""
        details = " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
        if success:
            self.logger.info(
                f"External API {provider} {operation} ok in {elapsed_ms}ms {details}".rstrip()
            )
        else:
            self.logger.warning(
                f"External API {provider} {operation} failed in {elapsed_ms}ms {details}".rstrip()
            )

    def generation(
        self,
        operation: str,
        model: str,
        success: bool,
        elapsed_ms: int,
        **extra: Any,
    ) -> None:
        """Record the outcome of a text-generation call."""
        details = " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
        status = "ok" if success else "failed"
        level = logging.INFO if success else logging.WARNING
        self.logger.log(
            level, f"Generation {operation} [{model}] {status} in {elapsed_ms}ms {details}".rstrip()
        )
