"""Notification permission reconciliation with the OS permission subsystem."""

from __future__ import annotations

import asyncio
import itertools
from typing import Optional

from .collaborators import PermissionSubsystem
from .config import Settings
from .errors import PermissionCorrelationError, PermissionErrorKind, describe_exception
from .models import PermissionState
from .state import GatewayState
from .utils import log_debug, log_error, log_info


class PermissionCoordinator:
    """
    Owns the permission half of ``GatewayState``.

    At most one OS request is outstanding at a time. Every request carries a
    fresh correlation code, and only a callback quoting the pending code may
    resolve it. Callers arriving while a request is pending share its outcome.
    The OS callback must be delivered on the event loop thread.
    """

    def __init__(self, state: GatewayState, subsystem: PermissionSubsystem, settings: Settings):
        self._state = state
        self._subsystem = subsystem
        self._settings = settings
        self._codes = itertools.count(settings.permission_request_code)
        self._pending: Optional[asyncio.Future] = None

    @property
    def state(self) -> PermissionState:
        return self._state.permission_state

    async def check_or_request(self) -> bool:
        if not self._subsystem.requires_permission():
            if self._state.permission_state != PermissionState.GRANTED:
                log_info("Platform does not require notification permission, granted by default")
                self._state.advance_permission(PermissionState.GRANTED)
            return True

        async with self._state.permission_lock:
            current = self._state.permission_state
            if current.resolved:
                log_debug(self._settings, f"Notification permission already {current.value}")
                return current == PermissionState.GRANTED

            if current == PermissionState.PENDING_REQUEST:
                log_debug(self._settings, "Permission request already pending, sharing its outcome")
                pending = self._pending
            elif self._subsystem.is_granted():
                log_info("Notification permission already granted")
                self._state.advance_permission(PermissionState.GRANTED)
                return True
            else:
                pending = self._issue_request()
                if pending is None:
                    return False

        return await asyncio.shield(pending)

    def on_permission_result(self, correlation_code: int, granted: bool) -> bool:
        """Apply the OS answer. Returns False when the callback is stale or unsolicited."""
        expected = self._state.pending_permission_code
        if self._pending is None or expected is None:
            self._reject(PermissionErrorKind.NO_PENDING_REQUEST, f"callback {correlation_code} arrived with no request pending")
            return False
        if correlation_code != expected:
            self._reject(
                PermissionErrorKind.CORRELATION_MISMATCH,
                f"callback {correlation_code} does not match pending request {expected}",
            )
            return False

        self._state.advance_permission(PermissionState.GRANTED if granted else PermissionState.DENIED)
        pending = self._pending
        self._pending = None
        self._state.pending_permission_code = None
        log_info(f"Permission request result: {'GRANTED' if granted else 'DENIED'}")
        if not pending.done():
            pending.set_result(bool(granted))
        return True

    def _issue_request(self) -> Optional[asyncio.Future]:
        code = next(self._codes)
        pending = asyncio.get_running_loop().create_future()
        # Pending state is committed before the OS call; the OS may answer synchronously.
        self._pending = pending
        self._state.pending_permission_code = code
        self._state.advance_permission(PermissionState.PENDING_REQUEST)
        log_debug(self._settings, f"Requesting notification permission (code {code})")
        try:
            self._subsystem.request_permission(code)
        except Exception as exc:  # pylint: disable=broad-except
            log_error(
                "permission",
                f"OS permission request failed: {describe_exception(exc)}",
                PermissionErrorKind.REQUEST_FAILED,
                exc,
            )
            if self._pending is pending:
                self._pending = None
                self._state.pending_permission_code = None
                self._state.advance_permission(PermissionState.UNKNOWN)
            return None
        return pending

    def _reject(self, kind: PermissionErrorKind, cause: str) -> None:
        error = PermissionCorrelationError(kind, cause)
        log_error(error.stage, f"ignored callback: {error.describe()}", kind)
