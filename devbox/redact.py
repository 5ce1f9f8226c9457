"""Mask the Vultr API key wherever it could reach the terminal.

The key arrives either through the environment or from ``~/.auth/vultr``;
both sources feed one pattern list that log records are scrubbed against.
"""

import logging
import os
import re

MASK = "***"

# Environment variables that carry provider credentials
_SECRET_ENV_VARS = [
    "VULTR_API_KEY",
]

# Shorter values are too likely to collide with ordinary words
_MIN_SECRET_LENGTH = 8

# Keys loaded from files, added via register_secret()
_registered: set[str] = set()

# Compiled on first use, dropped whenever a secret is registered
_patterns: list[re.Pattern] | None = None


def _known_secrets():
    env_values = (os.environ.get(name, "") for name in _SECRET_ENV_VARS)
    return {v for v in (*env_values, *_registered) if len(v) >= _MIN_SECRET_LENGTH}


def _get_patterns() -> list[re.Pattern]:
    global _patterns
    if _patterns is None:
        # Longest first, so a key containing another key is masked whole
        ordered = sorted(_known_secrets(), key=len, reverse=True)
        _patterns = [re.compile(re.escape(v)) for v in ordered]
    return _patterns


def register_secret(value: str) -> None:
    """Mask *value* from now on, e.g. an API key read from a file."""
    global _patterns
    if not value:
        return
    _registered.add(value)
    _patterns = None


def _mask(text: str, patterns) -> str:
    for pattern in patterns:
        text = pattern.sub(MASK, text)
    return text


def redact_secrets(text: str) -> str:
    """Return *text* with every known API key replaced by ``***``."""
    return _mask(text, _get_patterns())


def _mask_arg(value, patterns):
    return _mask(value, patterns) if isinstance(value, str) else value


class SecretRedactingFilter(logging.Filter):
    """Scrub API keys from a record's message and its %-style arguments.

    Install it on the output handler: filters on the root logger do not see
    records that propagate up from module loggers.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        patterns = _get_patterns()
        if not patterns:
            return True
        record.msg = _mask(str(record.msg), patterns)
        if isinstance(record.args, dict):
            record.args = {k: _mask_arg(v, patterns) for k, v in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(_mask_arg(a, patterns) for a in record.args)
        return True
