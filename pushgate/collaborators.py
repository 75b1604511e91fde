"""Protocol definitions for the collaborators the gateway drives but does not own."""

from __future__ import annotations

from typing import Awaitable, Protocol, Union

from .models import ClientCredentials


class ProviderClient(Protocol):
    """A constructed remote-messaging client."""

    async def fetch_token(self) -> str:
        """Fetch the registration token for this installation.

        Raises:
            FetchError: To classify the failure explicitly.
            Exception: Anything else is classified by ``classify_fetch_error``.
        """
        ...


class ProviderClientFactory(Protocol):
    """Builds the provider client from resolved credentials. May be sync or async."""

    def __call__(self, credentials: ClientCredentials) -> Union[ProviderClient, Awaitable[ProviderClient]]:
        ...


class PermissionSubsystem(Protocol):
    """The OS notification-permission subsystem."""

    def requires_permission(self) -> bool:
        """False on platforms where notifications are allowed without asking."""
        ...

    def is_granted(self) -> bool:
        ...

    def request_permission(self, correlation_code: int) -> None:
        """Show the OS prompt. The answer comes back through ``on_permission_result``."""
        ...
