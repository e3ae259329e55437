"""
Logging helpers.

Tokens, codes and client secrets must never reach a log record in full;
`mask_secret` keeps a short prefix so two values can still be told apart
while debugging.
"""

from __future__ import annotations

import logging
from typing import Optional

_KEEP = 6


def mask_secret(value: Optional[str], keep: int = _KEEP) -> str:
    if not value:
        return "<empty>"
    if len(value) <= keep:
        return "*" * len(value)
    return f"{value[:keep]}****"


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the `pkg_fireauth` namespace."""
    if name.startswith("pkg_fireauth"):
        return logging.getLogger(name)
    return logging.getLogger(f"pkg_fireauth.{name}")
