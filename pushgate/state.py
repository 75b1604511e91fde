"""Process-wide state shared by the gateway components."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from .errors import InvalidTransition
from .models import ClientState, GatewayStatus, PermissionState

_CLIENT_TRANSITIONS: Dict[ClientState, Set[ClientState]] = {
    ClientState.UNINITIALIZED: {ClientState.INITIALIZING},
    ClientState.INITIALIZING: {ClientState.READY, ClientState.FAILED},
    ClientState.FAILED: {ClientState.INITIALIZING},
    ClientState.READY: set(),
}

# PENDING_REQUEST -> UNKNOWN only happens when the OS request could not be issued.
_PERMISSION_TRANSITIONS: Dict[PermissionState, Set[PermissionState]] = {
    PermissionState.UNKNOWN: {
        PermissionState.PENDING_REQUEST,
        PermissionState.GRANTED,
        PermissionState.DENIED,
    },
    PermissionState.PENDING_REQUEST: {
        PermissionState.GRANTED,
        PermissionState.DENIED,
        PermissionState.UNKNOWN,
    },
    PermissionState.GRANTED: set(),
    PermissionState.DENIED: set(),
}


@dataclass
class GatewayState:
    """
    Holds the mutable state owned by the lifecycle and permission components.

    Client and permission state each have their own lock so that a slow
    provider construction never blocks a permission callback. Writers go
    through ``advance_client`` / ``advance_permission``; readers only ever see
    a committed value.
    """

    client_state: ClientState = ClientState.UNINITIALIZED
    client: Optional[Any] = None
    permission_state: PermissionState = PermissionState.UNKNOWN
    pending_permission_code: Optional[int] = None
    client_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    permission_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def advance_client(self, new_state: ClientState) -> ClientState:
        """Move the client state machine forward, returning the previous state."""
        previous = self.client_state
        if new_state not in _CLIENT_TRANSITIONS[previous]:
            raise InvalidTransition(f"client state cannot go from {previous.value} to {new_state.value}")
        self.client_state = new_state
        return previous

    def advance_permission(self, new_state: PermissionState) -> PermissionState:
        previous = self.permission_state
        if new_state not in _PERMISSION_TRANSITIONS[previous]:
            raise InvalidTransition(f"permission state cannot go from {previous.value} to {new_state.value}")
        self.permission_state = new_state
        return previous

    def snapshot(self, token_request_id: Optional[int] = None) -> GatewayStatus:
        return GatewayStatus(
            client_state=self.client_state,
            permission_state=self.permission_state,
            token_request_id=token_request_id,
        )
