"""Query parameter validation and source URL resolution."""

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Mapping, Optional
from urllib.parse import urlsplit

from pydantic import ValidationError as PydanticValidationError

from src.api.models import ResolvedOptions, TransformRequest
from src.core.encoding import select_encoding

logger = logging.getLogger(__name__)

# Model field -> query parameter it is read from.
QUERY_PARAMS: dict[str, str] = {"width": "w", "quality": "q", "url": "url"}

WILDCARD_HOST = "*"


@dataclass(frozen=True)
class FieldError:
    """A single failing request field."""

    field: str
    param: str
    reason: str

    def __str__(self) -> str:
        return f"{self.field} ({self.param}): {self.reason}"


class ValidationError(Exception):
    """Raised when request parameters are invalid or the source host is not allowed."""

    def __init__(self, message: str, errors: Optional[list[FieldError]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_field_errors(cls, errors: list[FieldError]) -> "ValidationError":
        detail = "; ".join(str(error) for error in errors)
        return cls(f"Invalid parameters: {detail}", errors)


def parse_request(params: Mapping[str, Optional[str]]) -> TransformRequest:
    """
    Build a TransformRequest from raw query parameters.

    Every failing field is reported, not only the first one.

    Raises:
        ValidationError: If any parameter is missing, not an integer or out of range
    """
    raw = {
        field: params[param]
        for field, param in QUERY_PARAMS.items()
        if params.get(param) is not None
    }

    try:
        return TransformRequest.model_validate(raw)
    except PydanticValidationError as e:
        errors = []
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "request"
            errors.append(
                FieldError(
                    field=field,
                    param=QUERY_PARAMS.get(field, field),
                    reason=error["msg"],
                )
            )
        raise ValidationError.from_field_errors(errors) from e


def resolve_url(url: str, default_domain: str) -> str:
    """Resolve a '/'-prefixed path against the default domain."""
    if url.startswith(("http://", "https://")):
        return url
    return f"https://{default_domain}{url}"


def source_extension(url: str) -> str:
    """Lower-cased file extension of the URL path, ignoring query and fragment."""
    return PurePosixPath(urlsplit(url).path).suffix.lower()


def source_host(url: str) -> str:
    """
    Host of an absolute URL.

    Raises:
        ValidationError: If the URL cannot be parsed, has a bad port or no host
    """
    try:
        parts = urlsplit(url)
        host = parts.hostname
        parts.port  # raises ValueError on a non-numeric or out-of-range port
    except ValueError as e:
        raise ValidationError.from_field_errors(
            [FieldError(field="url", param="url", reason=f"Invalid URL: {e}")]
        ) from e

    if not host:
        raise ValidationError.from_field_errors(
            [FieldError(field="url", param="url", reason="URL has no host")]
        )
    return host


def validate_request(
    params: Mapping[str, Optional[str]],
    accept: str,
    allowed_hosts: list[str],
    default_domain: str,
) -> ResolvedOptions:
    """
    Validate a request and resolve everything needed to serve it.

    Args:
        params: Raw query parameters (w, q, url)
        accept: Raw Accept header value
        allowed_hosts: Permitted source hosts, '*' allows any
        default_domain: Host used for relative source paths

    Returns:
        Resolved options including the absolute URL and selected encoding

    Raises:
        ValidationError: On bad parameters or a disallowed host
    """
    request = parse_request(params)

    parsed_url = resolve_url(request.url, default_domain)
    host = source_host(parsed_url)

    if host not in allowed_hosts and WILDCARD_HOST not in allowed_hosts:
        raise ValidationError(f"Invalid host: {host}")

    encoding = select_encoding(
        request.quality,
        request.width,
        source_extension(parsed_url),
        accept or "",
    )
    logger.debug(f"Selected {encoding.format} encoding for {parsed_url}")

    return ResolvedOptions(
        width=request.width,
        quality=request.quality,
        url=request.url,
        parsed_url=parsed_url,
        encoding=encoding,
    )
