"""Shared fixtures and fake collaborators."""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, List, Optional, Tuple

import pytest

from pushgate.config import Settings
from pushgate.events import EVENT_SIGNATURES, EventEmitter
from pushgate.lifecycle import ClientLifecycle
from pushgate.models import ClientCredentials
from pushgate.permissions import PermissionCoordinator
from pushgate.state import GatewayState
from pushgate.tokens import TokenAcquisition

APP_ID = "com.example.app"

SAMPLE_CONFIG: Dict[str, Any] = {
    "project_info": {
        "project_number": "123456789012",
        "firebase_url": "https://example-project.firebaseio.com",
        "project_id": "example-project",
        "storage_bucket": "example-project.appspot.com",
    },
    "client": [
        {
            "client_info": {
                "mobilesdk_app_id": "1:123456789012:android:other",
                "android_client_info": {"package_name": "com.example.other"},
            },
            "oauth_client": [],
            "api_key": [{"current_key": "AIzaOtherKey"}],
        },
        {
            "client_info": {
                "mobilesdk_app_id": "1:123456789012:android:abcdef",
                "android_client_info": {"package_name": APP_ID},
            },
            "oauth_client": [],
            "api_key": [{"current_key": "AIzaExampleKey"}, {"current_key": "AIzaSecondKey"}],
            "services": {"appinvite_service": {"other_platform_oauth_client": []}},
        },
    ],
    "configuration_version": "1",
}


def sample_config() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_CONFIG)


class FakeProviderClient:
    """Plays back ``outcomes`` in order; the last one repeats."""

    def __init__(self, outcomes: Optional[List[Any]] = None, gate: Optional[asyncio.Event] = None):
        self.outcomes = list(outcomes or ["token-abc123"])
        self.gate = gate
        self.calls = 0

    async def fetch_token(self) -> str:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeClientFactory:
    def __init__(
        self,
        client: Optional[FakeProviderClient] = None,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.client = client or FakeProviderClient()
        self.error = error
        self.gate = gate
        self.calls: List[ClientCredentials] = []

    async def __call__(self, credentials: ClientCredentials) -> FakeProviderClient:
        self.calls.append(credentials)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.client


class FakePermissionSubsystem:
    def __init__(self, requires: bool = True, granted: bool = False, error: Optional[Exception] = None):
        self.requires = requires
        self.granted = granted
        self.error = error
        self.requests: List[int] = []

    def requires_permission(self) -> bool:
        return self.requires

    def is_granted(self) -> bool:
        return self.granted

    def request_permission(self, correlation_code: int) -> None:
        self.requests.append(correlation_code)
        if self.error is not None:
            raise self.error


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class EventRecorder:
    def __init__(self, emitter: EventEmitter):
        self.events: List[Tuple[str, tuple]] = []
        for name in EVENT_SIGNATURES:
            emitter.connect(name, self._listener(name))

    def _listener(self, name: str):
        def _record(*payload: Any) -> None:
            self.events.append((name, payload))

        return _record

    def named(self, name: str) -> List[tuple]:
        return [payload for event, payload in self.events if event == name]


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def credentials() -> ClientCredentials:
    return ClientCredentials(
        api_key="AIzaExampleKey",
        application_id="1:123456789012:android:abcdef",
        project_id="example-project",
        sender_id="123456789012",
        package_name=APP_ID,
    )


@pytest.fixture()
def state() -> GatewayState:
    return GatewayState()


@pytest.fixture()
def provider_client() -> FakeProviderClient:
    return FakeProviderClient()


@pytest.fixture()
def factory(provider_client: FakeProviderClient) -> FakeClientFactory:
    return FakeClientFactory(provider_client)


@pytest.fixture()
def subsystem() -> FakePermissionSubsystem:
    return FakePermissionSubsystem()


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def lifecycle(state, factory, settings) -> ClientLifecycle:
    return ClientLifecycle(state, factory, settings)


@pytest.fixture()
def permissions(state, subsystem, settings) -> PermissionCoordinator:
    return PermissionCoordinator(state, subsystem, settings)


@pytest.fixture()
def tokens(lifecycle, permissions, settings, sleep) -> TokenAcquisition:
    return TokenAcquisition(lifecycle, permissions, settings, sleep=sleep)
