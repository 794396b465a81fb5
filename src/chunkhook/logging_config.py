"""Logging setup: a Rich handler on stderr with webhook-token masking.

Module code logs through ``logging.getLogger(__name__)``; only the CLI calls
setup_logging(). Output goes to stderr so ``chunkhook stream`` can write file
bytes to stdout untouched.
"""

from __future__ import annotations

import logging
import re

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "chunkhook"


class SensitiveDataFilter(logging.Filter):
    """Mask webhook tokens and credential-like values in log records."""

    PATTERNS = [
        (re.compile(r"(/webhooks/\d+/)([\w\-]+)"), r"\1***MASKED***"),
        (re.compile(r'((?:token|secret|password|api[_-]?key)["\']?\s*[:=]\s*["\']?)([^"\'}\s,&]+)', re.IGNORECASE), r"\1***MASKED***"),
        (re.compile(r"(bearer\s+)([^\s,}'\"]+)", re.IGNORECASE), r"\1***MASKED***"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._mask(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._mask_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._mask_value(a) for a in record.args)
        return True

    def _mask(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _mask_value(self, value: object) -> object:
        return self._mask(value) if isinstance(value, str) else value


def setup_logging(level: str = "WARNING") -> logging.Logger:
    """Configure the ``chunkhook`` logger once and return it.

    Calling again only updates the level.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return logger

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(SensitiveDataFilter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger
