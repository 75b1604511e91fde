"""At-most-once construction of the provider client."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Optional

from .collaborators import ProviderClientFactory
from .config import Settings
from .errors import InitError, InitErrorKind, classify_init_error, describe_exception
from .models import ClientCredentials, ClientState, InitResult, InitStatus
from .state import GatewayState
from .utils import log_debug, log_error, log_info, mask_token


class ClientLifecycle:
    """
    Owns the client half of ``GatewayState``.

    ``initialize`` is a compare-and-swap on the client state: the first caller
    moves it to INITIALIZING and constructs the client, callers arriving while
    that is in progress await the same attempt, and callers arriving after
    READY get ALREADY_INITIALIZED without the factory being touched.
    """

    def __init__(self, state: GatewayState, factory: ProviderClientFactory, settings: Settings):
        self._state = state
        self._factory = factory
        self._settings = settings
        self._attempt: Optional[asyncio.Future] = None

    @property
    def state(self) -> ClientState:
        return self._state.client_state

    @property
    def client(self) -> Optional[Any]:
        if self._state.client_state != ClientState.READY:
            return None
        return self._state.client

    async def initialize(self, credentials: ClientCredentials) -> InitResult:
        async with self._state.client_lock:
            if self._state.client_state == ClientState.READY:
                log_debug(self._settings, "Provider client already initialized, skipping")
                return InitResult(InitStatus.ALREADY_INITIALIZED)
            if self._attempt is not None:
                attempt = self._attempt
                owner = False
            else:
                self._state.advance_client(ClientState.INITIALIZING)
                attempt = asyncio.get_running_loop().create_future()
                self._attempt = attempt
                owner = True

        if not owner:
            log_debug(self._settings, "Initialization already in progress, waiting for it")
            return await asyncio.shield(attempt)

        log_debug(
            self._settings,
            f"Constructing provider client for {credentials.application_id} "
            f"(project {credentials.project_id}, key {mask_token(credentials.api_key)})",
        )
        try:
            client = self._factory(credentials)
            if inspect.isawaitable(client):
                client = await client
        except asyncio.CancelledError:
            # No await between here and the commit, so the lock is not needed.
            cancelled = InitError(InitErrorKind.UNKNOWN, "initialization cancelled")
            self._finish(attempt, InitResult(InitStatus.FAILED, cancelled), None)
            raise
        except Exception as exc:  # pylint: disable=broad-except
            kind = classify_init_error(exc)
            error = exc if isinstance(exc, InitError) else InitError(kind, describe_exception(exc))
            log_error("init", "provider client construction failed", kind, exc)
            result = InitResult(InitStatus.FAILED, error)
            client = None
        else:
            result = InitResult(InitStatus.INITIALIZED)

        async with self._state.client_lock:
            self._finish(attempt, result, client)
        if result.ok:
            log_info(f"Provider client initialized for project {credentials.project_id}")
        return result

    def _finish(self, attempt: asyncio.Future, result: InitResult, client: Optional[Any]) -> None:
        if result.ok:
            self._state.client = client
            self._state.advance_client(ClientState.READY)
        else:
            self._state.advance_client(ClientState.FAILED)
        self._attempt = None
        if not attempt.done():
            attempt.set_result(result)
