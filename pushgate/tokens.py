"""Registration token acquisition with single-flight and retry/backoff."""

from __future__ import annotations

import asyncio
import itertools
from typing import Awaitable, Callable, Optional

from .config import Settings
from .errors import (
    FetchError,
    FetchErrorKind,
    classify_fetch_error,
    describe_exception,
    should_retry_fetch,
)
from .lifecycle import ClientLifecycle
from .models import PermissionState, TokenRequest
from .permissions import PermissionCoordinator
from .utils import log_debug, log_error, mask_token

Sleep = Callable[[float], Awaitable[None]]


class TokenAcquisition:
    """
    Fetches the registration token from the provider client.

    Only one fetch runs at a time: concurrent callers attach to the in-flight
    task and all observe its single outcome. Transient failures are retried
    with exponential backoff until either the attempt budget or the overall
    deadline runs out.
    """

    def __init__(
        self,
        lifecycle: ClientLifecycle,
        permissions: PermissionCoordinator,
        settings: Settings,
        sleep: Sleep = asyncio.sleep,
    ):
        self._lifecycle = lifecycle
        self._permissions = permissions
        self._settings = settings
        self._sleep = sleep
        self._request_ids = itertools.count(1)
        self._inflight: Optional[asyncio.Task] = None
        self._request: Optional[TokenRequest] = None

    @property
    def current_request(self) -> Optional[TokenRequest]:
        return self._request

    async def fetch_token(self) -> str:
        task = self._inflight
        if task is None:
            loop = asyncio.get_running_loop()
            request = TokenRequest(request_id=next(self._request_ids), started_at=loop.time())
            task = loop.create_task(self._run(request))
            self._inflight = task
            self._request = request
        else:
            log_debug(self._settings, f"Token request {self._request.request_id} in flight, attaching")
        return await asyncio.shield(task)

    async def _run(self, request: TokenRequest) -> str:
        try:
            return await self._attempt_all(request)
        finally:
            if self._request is request:
                self._inflight = None
                self._request = None

    async def _attempt_all(self, request: TokenRequest) -> str:
        client = self._lifecycle.client
        if client is None:
            raise FetchError(FetchErrorKind.NON_TRANSIENT, "provider client not initialized")

        if self._permissions.state != PermissionState.GRANTED:
            log_debug(
                self._settings,
                f"Fetching token with notification permission {self._permissions.state.value}",
            )

        loop = asyncio.get_running_loop()
        settings = self._settings
        deadline = request.started_at + settings.token_fetch_deadline
        max_attempts = settings.token_fetch_max_attempts
        last_cause = "no attempt made"
        deadline_hit = False

        while request.attempts < max_attempts:
            remaining = deadline - loop.time()
            if remaining <= 0:
                deadline_hit = True
                break
            request.attempts += 1
            try:
                token = await asyncio.wait_for(client.fetch_token(), timeout=remaining)
            except Exception as exc:  # pylint: disable=broad-except
                kind = classify_fetch_error(exc)
                last_cause = describe_exception(exc)
                log_error(
                    "token",
                    f"request {request.request_id} attempt {request.attempts}/{max_attempts} failed",
                    kind,
                    exc,
                )
                if not should_retry_fetch(kind):
                    if isinstance(exc, FetchError):
                        raise
                    raise FetchError(FetchErrorKind.NON_TRANSIENT, last_cause) from exc
                if request.attempts >= max_attempts:
                    break
                delay = settings.backoff_delay(request.attempts)
                if loop.time() + delay >= deadline:
                    deadline_hit = True
                    break
                log_debug(settings, f"Retrying token request {request.request_id} in {delay:.2f}s")
                await self._sleep(delay)
                continue

            if not isinstance(token, str) or not token:
                raise FetchError(FetchErrorKind.NON_TRANSIENT, "provider returned an empty token")
            log_debug(settings, f"Token request {request.request_id} succeeded: {mask_token(token)}")
            return token

        if deadline_hit:
            cause = (
                f"deadline of {settings.token_fetch_deadline:g}s exceeded after "
                f"{request.attempts} attempt(s) ({last_cause})"
            )
        else:
            cause = f"retries exhausted after {request.attempts} attempt(s) ({last_cause})"
        raise FetchError(FetchErrorKind.RETRIES_EXHAUSTED, cause)
