"""Logging helpers used across modules."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .config import Settings


def mask_token(token: Optional[str], visible_chars: int = 4) -> str:
    """Safely mask a token for logging, showing only last N characters"""
    if not token or len(token) <= visible_chars:
        return "***"
    return f"...{token[-visible_chars:]}"


def log_debug(settings: Settings, message: str) -> None:
    """Log message only if DEBUG_MODE is enabled."""
    if settings.debug_mode:
        print(f"[DEBUG] {message}")


def log_info(message: str) -> None:
    print(f"[INFO] {message}")


def log_error(
    stage: str,
    message: str,
    kind: Optional[Enum] = None,
    exception: Optional[BaseException] = None,
) -> None:
    """Centralized error logging with context. Always printed, whatever DEBUG_MODE says."""
    kind_str = kind.value if kind is not None else "N/A"
    exception_str = f" | Exception: {exception!r}" if exception is not None else ""
    print(f"[ERROR] Stage: {stage} | Type: {kind_str} | {message}{exception_str}")
