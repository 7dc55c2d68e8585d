from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    """Shows short user-visible messages about submissions."""

    def success(self, title: str, description: str) -> None: ...

    def error(self, title: str, description: str) -> None: ...


class LoggingNotifier:
    """Notifier for headless clients: writes notifications to the log."""

    def success(self, title: str, description: str) -> None:
        logger.info("notification", level="success", title=title, description=description)

    def error(self, title: str, description: str) -> None:
        logger.warning("notification", level="error", title=title, description=description)
