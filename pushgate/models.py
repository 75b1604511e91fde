"""Pydantic models for the configuration document and gateway value types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import GatewayError


class ProjectInfo(BaseModel):
    project_id: str = Field(..., min_length=1)
    project_number: str = Field(..., description="Numeric sender id")
    firebase_url: Optional[str] = None
    storage_bucket: Optional[str] = None

    @field_validator("project_number", mode="before")
    @classmethod
    def _numeric_sender_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str) or not (value.isascii() and value.isdigit()):
            raise ValueError("project_number must be a numeric sender id")
        return value


class AndroidClientInfo(BaseModel):
    package_name: str = Field(..., min_length=1)


class ClientInfo(BaseModel):
    mobilesdk_app_id: str = Field(..., min_length=1)
    android_client_info: AndroidClientInfo


class ApiKey(BaseModel):
    current_key: str = Field(..., min_length=1)


class ClientEntry(BaseModel):
    client_info: ClientInfo
    api_key: List[ApiKey] = Field(..., min_length=1)

    @property
    def package_name(self) -> str:
        return self.client_info.android_client_info.package_name


class ConfigurationDocument(BaseModel):
    """The subset of a ``google-services.json`` document the gateway reads."""

    project_info: ProjectInfo
    client: List[ClientEntry]


class ClientCredentials(BaseModel):
    """Everything the provider client needs to be constructed."""

    model_config = ConfigDict(frozen=True)

    api_key: str
    application_id: str
    project_id: str
    sender_id: str
    package_name: str
    database_url: Optional[str] = None
    storage_bucket: Optional[str] = None


class ClientState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class PermissionState(Enum):
    UNKNOWN = "unknown"
    PENDING_REQUEST = "pending_request"
    GRANTED = "granted"
    DENIED = "denied"

    @property
    def resolved(self) -> bool:
        return self in (PermissionState.GRANTED, PermissionState.DENIED)


class InitStatus(Enum):
    INITIALIZED = "initialized"
    ALREADY_INITIALIZED = "already_initialized"
    FAILED = "failed"


@dataclass(frozen=True)
class InitResult:
    status: InitStatus
    error: Optional[GatewayError] = None

    @property
    def ok(self) -> bool:
        return self.status != InitStatus.FAILED


@dataclass
class TokenRequest:
    """One in-flight token fetch. Dropped as soon as the fetch completes."""

    request_id: int
    started_at: float
    attempts: int = 0


@dataclass(frozen=True)
class GatewayStatus:
    client_state: ClientState
    permission_state: PermissionState
    token_request_id: Optional[int] = None
