"""Configuration document parsing and client entry selection."""

from __future__ import annotations

from typing import Any, Mapping, Union

from pydantic import ValidationError

from .errors import ResolutionError, ResolutionErrorKind
from .models import ClientCredentials, ConfigurationDocument

ConfigInput = Union[str, bytes, Mapping[str, Any], ConfigurationDocument]


def _format_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    extra = f" (+{error.error_count() - 1} more)" if error.error_count() > 1 else ""
    return f"malformed configuration at {location}: {first.get('msg')}{extra}"


def parse_document(document: ConfigInput) -> ConfigurationDocument:
    """Validate a raw configuration document against the schema."""
    if isinstance(document, ConfigurationDocument):
        return document
    try:
        if isinstance(document, (str, bytes)):
            return ConfigurationDocument.model_validate_json(document)
        if isinstance(document, Mapping):
            return ConfigurationDocument.model_validate(dict(document))
    except ValidationError as exc:
        raise ResolutionError(ResolutionErrorKind.MALFORMED, _format_validation_error(exc)) from exc
    except (TypeError, ValueError) as exc:
        raise ResolutionError(ResolutionErrorKind.MALFORMED, f"malformed configuration: {exc}") from exc
    raise ResolutionError(
        ResolutionErrorKind.MALFORMED,
        f"configuration must be a JSON string or mapping, got {type(document).__name__}",
    )


def resolve(document: ConfigInput, application_id: str) -> ClientCredentials:
    """
    Select the client entry whose package name equals ``application_id``.

    Matching is exact string equality and the first entry in document order
    wins. Raises ``ResolutionError`` with kind ``MALFORMED`` or ``NO_MATCH``.
    """
    if not application_id:
        raise ResolutionError(ResolutionErrorKind.MALFORMED, "application id is empty")

    parsed = parse_document(document)
    entry = next((client for client in parsed.client if client.package_name == application_id), None)
    if entry is None:
        raise ResolutionError(
            ResolutionErrorKind.NO_MATCH,
            f"no client entry for package {application_id}",
        )

    project = parsed.project_info
    return ClientCredentials(
        api_key=entry.api_key[0].current_key,
        application_id=entry.client_info.mobilesdk_app_id,
        project_id=project.project_id,
        sender_id=project.project_number,
        package_name=entry.package_name,
        database_url=project.firebase_url,
        storage_bucket=project.storage_bucket,
    )
