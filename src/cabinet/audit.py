"""Audit trail: one line per filing operation in <log_dir>/.log.txt.

    [2026-10-19 16:45:02] [UPLOAD              ] user=registrar       | category=Grade7 | subfolder=Juan | file=report.pdf
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class AuditLog:
    """Appends structured action lines through a dedicated logger."""

    def __init__(self, path: Path | None, user: str) -> None:
        self.path = path
        self.user = user
        # Unregistered logger: one per store, never reaches the root handlers.
        self.logger = logging.Logger("cabinet.audit", logging.INFO)
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8", delay=True)
            handler.setFormatter(logging.Formatter("[%(asctime)s] %(message)s", datefmt=_LOG_DATEFMT))
            self.logger.addHandler(handler)
        else:
            self.logger.addHandler(logging.NullHandler())

    def record(self, action: str, **details: str) -> None:
        fields = " | ".join(f"{k}={v}" for k, v in details.items())
        self.logger.info("[%-20s] user=%-15s | %s", action, self.user, fields)

    def close(self) -> None:
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
