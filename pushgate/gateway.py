"""Host-facing gateway tying the components together."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from .collaborators import PermissionSubsystem, ProviderClientFactory
from .config import Settings, get_settings
from .errors import FetchError, FetchErrorKind, InitError, InitErrorKind, ResolutionError, describe_exception
from .events import EventEmitter
from .lifecycle import ClientLifecycle
from .models import ClientState, GatewayStatus, InitResult, InitStatus
from .permissions import PermissionCoordinator
from .resolver import ConfigInput, resolve
from .state import GatewayState
from .tokens import Sleep, TokenAcquisition
from .utils import log_debug, log_error, log_info, mask_token


class PushGateway:
    """
    The callable component a host embeds.

    No operation raises into the host: every outcome, success or failure, is
    returned and emitted as exactly one of the five gateway events.
    """

    def __init__(
        self,
        application_id: str,
        client_factory: ProviderClientFactory,
        permission_subsystem: PermissionSubsystem,
        settings: Settings,
        emitter: Optional[EventEmitter] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.application_id = application_id
        self.settings = settings
        self.state = GatewayState()
        self.events = emitter or EventEmitter(settings)
        self.lifecycle = ClientLifecycle(self.state, client_factory, settings)
        self.permissions = PermissionCoordinator(self.state, permission_subsystem, settings)
        self.tokens = TokenAcquisition(self.lifecycle, self.permissions, settings, sleep=sleep)

    def connect(self, name: str, listener: Callable[..., Any]) -> None:
        self.events.connect(name, listener)

    def disconnect(self, name: str, listener: Callable[..., Any]) -> None:
        self.events.disconnect(name, listener)

    async def init(self, config: ConfigInput) -> InitResult:
        """Resolve credentials from ``config`` and initialize the provider client."""
        log_debug(self.settings, "Initialization requested")

        if self.lifecycle.state == ClientState.READY:
            log_info("Provider client is already initialized.")
            self.events.emit("initialized")
            return InitResult(InitStatus.ALREADY_INITIALIZED)

        try:
            credentials = resolve(config, self.application_id)
        except ResolutionError as exc:
            log_error(exc.stage, "could not resolve client credentials", exc.kind, exc)
            self.events.emit("initialization_failed", exc.describe())
            return InitResult(InitStatus.FAILED, exc)

        try:
            result = await self.lifecycle.initialize(credentials)
        except Exception as exc:  # pylint: disable=broad-except
            error = InitError(InitErrorKind.UNKNOWN, describe_exception(exc))
            log_error(error.stage, "unexpected initialization failure", error.kind, exc)
            result = InitResult(InitStatus.FAILED, error)

        if result.ok:
            self.events.emit("initialized")
        else:
            self.events.emit("initialization_failed", result.error.describe())
        return result

    async def request_permission(self) -> bool:
        try:
            granted = await self.permissions.check_or_request()
        except Exception as exc:  # pylint: disable=broad-except
            log_error("permission", "permission check failed", exception=exc)
            granted = False
        self.events.emit("permission_request_completed", granted)
        return granted

    def on_permission_result(self, correlation_code: int, granted: bool) -> bool:
        """OS permission callback. Must run on the event loop thread."""
        return self.permissions.on_permission_result(correlation_code, granted)

    def on_permission_result_threadsafe(
        self, loop: asyncio.AbstractEventLoop, correlation_code: int, granted: bool
    ) -> None:
        loop.call_soon_threadsafe(self.on_permission_result, correlation_code, granted)

    async def get_token(self) -> Optional[str]:
        log_debug(self.settings, "Token requested")
        try:
            token = await self.tokens.fetch_token()
        except FetchError as exc:
            self.events.emit("token_fetch_failed", exc.describe())
            return None
        except Exception as exc:  # pylint: disable=broad-except
            error = FetchError(FetchErrorKind.NON_TRANSIENT, describe_exception(exc))
            log_error(error.stage, "unexpected token fetch failure", error.kind, exc)
            self.events.emit("token_fetch_failed", error.describe())
            return None
        log_info(f"Token received successfully: {mask_token(token)}")
        self.events.emit("token_received", token)
        return token

    def status(self) -> GatewayStatus:
        request = self.tokens.current_request
        return self.state.snapshot(request.request_id if request else None)


def create_gateway(
    application_id: str,
    client_factory: ProviderClientFactory,
    permission_subsystem: PermissionSubsystem,
    settings: Optional[Settings] = None,
    **kwargs: Any,
) -> PushGateway:
    settings = settings or get_settings()
    return PushGateway(application_id, client_factory, permission_subsystem, settings, **kwargs)
