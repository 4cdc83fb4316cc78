"""
respgate - Error Classification

Every failure that reaches the HTTP layer is turned into one
EnrichedErrorResponse:

- Framework HTTP errors keep their own status and detail
- openai SDK errors are classified by type, with bad requests refined
  through the image / file / vector store code tables
- Bare network errors are mapped through the network table
- Anything else becomes a 500 carrying the exception's name and traceback

Each classified error is written once to the interaction log and counted
in the errors metric. Nothing here retries; rate limits only signal
``retry_after_seconds`` and a ``Retry-After`` header.
"""

import ast
import errno
import json
import re
import socket
import traceback
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from http import HTTPStatus
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import openai
from starlette.exceptions import HTTPException

from ..observability.logging import InteractionLogger, get_interaction_logger, get_logger
from ..observability.metrics import MetricsCollector, get_metrics
from .error_codes import (
    APIErrorCode,
    NetworkErrorCode,
    OpenAIErrorType,
    lookup_network_error,
    lookup_request_error,
)
from .serialization import to_jsonable


logger = get_logger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60
UNKNOWN_REQUEST_ID = "unknown"

_EMBEDDED_OBJECT = re.compile(r"\{[\s\S]*\}")


class ErrorKind(str, Enum):
    """Closed set of classification outcomes."""
    HTTP_PASSTHROUGH = "http_passthrough"
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    INTERNAL_SERVER = "internal_server"
    BAD_REQUEST = "bad_request"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    GENERIC_API_ERROR = "generic_api_error"
    NETWORK = "network"
    UNKNOWN = "unknown"


# ============================================================
# Response model
# ============================================================

@dataclass
class RateLimitInfo:
    """Quota counters from upstream ``x-ratelimit-*`` headers."""
    limit_requests: Optional[str] = None
    remaining_requests: Optional[str] = None
    reset_requests: Optional[str] = None
    limit_tokens: Optional[str] = None
    remaining_tokens: Optional[str] = None
    reset_tokens: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class EnrichedErrorResponse:
    """
    The single error body returned to API clients.

    ``openai_error`` is set for SDK errors; ``error`` (and for unknown
    errors ``full_error``) otherwise. Unset fields are left out of the
    JSON body.
    """
    status_code: int
    path: str
    message: str
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )
    request_id: Optional[str] = None
    error_code: Optional[str] = None
    parameter: Optional[str] = None
    hint: Optional[str] = None
    rate_limit_info: Optional[RateLimitInfo] = None
    retry_after_seconds: Optional[int] = None
    openai_error: Optional[Dict[str, Any]] = None
    error: Any = None
    full_error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "statusCode": self.status_code,
            "timestamp": self.timestamp,
            "path": self.path,
            "message": self.message,
        }

        optional = {
            "request_id": self.request_id,
            "error_code": self.error_code,
            "parameter": self.parameter,
            "hint": self.hint,
            "rate_limit_info": self.rate_limit_info.to_dict() if self.rate_limit_info else None,
            "retry_after_seconds": self.retry_after_seconds,
            "openai_error": self.openai_error,
            "error": to_jsonable(self.error),
            "full_error": self.full_error,
        }
        result.update({k: v for k, v in optional.items() if v is not None})
        return result


# ============================================================
# Classification
# ============================================================

# Builtin OSError subclasses raised without an errno.
_OS_ERROR_CODES = (
    (ConnectionRefusedError, NetworkErrorCode.ECONNREFUSED),
    (ConnectionResetError, NetworkErrorCode.ECONNRESET),
    (TimeoutError, NetworkErrorCode.ETIMEDOUT),
    (socket.gaierror, NetworkErrorCode.ENOTFOUND),
)


def network_error_code(exc: Any) -> Optional[NetworkErrorCode]:
    """
    Network code of an exception, if it has one in NetworkErrorCode.

    Checks a string ``code`` attribute first, then an OSError's errno
    name, then well-known OSError subclasses.
    """
    code = getattr(exc, "code", None)
    if isinstance(code, str):
        try:
            return NetworkErrorCode(code)
        except ValueError:
            return None

    if isinstance(exc, OSError):
        if isinstance(exc.errno, int) and not isinstance(exc, socket.gaierror):
            name = errno.errorcode.get(exc.errno)
            if name in NetworkErrorCode.__members__:
                return NetworkErrorCode(name)
        for exc_type, network_code in _OS_ERROR_CODES:
            if isinstance(exc, exc_type):
                return network_code

    return None


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception onto exactly one ErrorKind."""
    if isinstance(exc, HTTPException):
        return ErrorKind.HTTP_PASSTHROUGH

    if isinstance(exc, openai.APIError):
        if isinstance(exc, openai.RateLimitError):
            return ErrorKind.RATE_LIMIT
        if isinstance(exc, openai.AuthenticationError):
            return ErrorKind.AUTHENTICATION
        if isinstance(exc, openai.InternalServerError):
            return ErrorKind.INTERNAL_SERVER
        if isinstance(exc, openai.BadRequestError) or getattr(exc, "status_code", None) == 400:
            return ErrorKind.BAD_REQUEST
        if isinstance(exc, openai.PermissionDeniedError):
            return ErrorKind.PERMISSION_DENIED
        if isinstance(exc, openai.NotFoundError):
            return ErrorKind.NOT_FOUND
        if isinstance(exc, openai.APITimeoutError):
            return ErrorKind.TIMEOUT
        return ErrorKind.GENERIC_API_ERROR

    if network_error_code(exc) is not None:
        return ErrorKind.NETWORK

    return ErrorKind.UNKNOWN


# ============================================================
# Field extraction
# ============================================================

def _embedded_error(message: Any) -> Optional[Dict[str, Any]]:
    """
    The ``error`` object of a JSON body embedded in an error message.

    The SDK renders bodies as ``Error code: 400 - {...}`` using Python
    repr, so a literal_eval is tried when the text is not valid JSON.
    """
    if not isinstance(message, str):
        return None
    match = _EMBEDDED_OBJECT.search(message)
    if not match:
        return None

    text = match.group(0)
    try:
        parsed = json.loads(text)
    except ValueError:
        try:
            parsed = ast.literal_eval(text)
        except (ValueError, SyntaxError, MemoryError, RecursionError):
            return None

    if isinstance(parsed, dict) and isinstance(parsed.get("error"), dict):
        return parsed["error"]
    return None


def _nested_error(exc: Any) -> Optional[Any]:
    nested = getattr(exc, "error", None)
    if nested is not None:
        return nested
    body = getattr(exc, "body", None)
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return None


def _field_of(source: Any, name: str) -> Any:
    if isinstance(source, dict):
        return source.get(name)
    return getattr(source, name, None)


def extract_error_code(exc: Any) -> Optional[str]:
    """Upstream error code: top-level ``code``, nested ``error.code``, then the message."""
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code:
        return code

    nested = _nested_error(exc)
    if nested is not None:
        code = _field_of(nested, "code")
        if isinstance(code, str) and code:
            return code

    embedded = _embedded_error(getattr(exc, "message", None) or str(exc))
    if embedded is not None:
        code = embedded.get("code")
        if isinstance(code, str) and code:
            return code
    return None


def extract_parameter(exc: Any) -> Optional[str]:
    """Request parameter blamed by the upstream, found the same way as the code."""
    param = getattr(exc, "param", None)
    if isinstance(param, str) and param:
        return param

    nested = _nested_error(exc)
    if nested is not None:
        param = _field_of(nested, "param")
        if isinstance(param, str) and param:
            return param

    embedded = _embedded_error(getattr(exc, "message", None) or str(exc))
    if embedded is not None:
        param = embedded.get("param")
        if isinstance(param, str) and param:
            return param
    return None


def _header(headers: Any, name: str) -> Optional[str]:
    """Case-insensitive header lookup over httpx.Headers or a plain mapping."""
    if headers is None:
        return None
    value = headers.get(name)
    if value is None and isinstance(headers, Mapping):
        lowered = {str(k).lower(): v for k, v in headers.items()}
        value = lowered.get(name.lower())
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or value == "":
        return None
    return str(value)


def error_headers(exc: Any) -> Any:
    response = getattr(exc, "response", None)
    if response is not None and getattr(response, "headers", None) is not None:
        return response.headers
    return getattr(exc, "headers", None)


def extract_retry_after(headers: Any) -> int:
    """Seconds from the ``retry-after`` header, 60 when absent or not an integer."""
    value = _header(headers, "retry-after")
    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug(
            "Retry-After is not an integer, using default",
            retry_after=value,
            default_seconds=DEFAULT_RETRY_AFTER_SECONDS,
        )
        return DEFAULT_RETRY_AFTER_SECONDS


def extract_rate_limit_info(headers: Any) -> Optional[RateLimitInfo]:
    """Rate limit counters; a missing header leaves its field unset."""
    if headers is None:
        return None
    return RateLimitInfo(
        limit_requests=_header(headers, "x-ratelimit-limit-requests"),
        remaining_requests=_header(headers, "x-ratelimit-remaining-requests"),
        reset_requests=_header(headers, "x-ratelimit-reset-requests"),
        limit_tokens=_header(headers, "x-ratelimit-limit-tokens"),
        remaining_tokens=_header(headers, "x-ratelimit-remaining-tokens"),
        reset_tokens=_header(headers, "x-ratelimit-reset-tokens"),
    )


def extract_request_id(exc: Any) -> str:
    request_id = getattr(exc, "request_id", None)
    if not request_id:
        request_id = _header(error_headers(exc), "x-request-id")
    return request_id or UNKNOWN_REQUEST_ID


def describe_exception(exc: BaseException) -> Dict[str, Any]:
    """JSON-safe description of an exception for logs and ``full_error``."""
    described: Dict[str, Any] = {
        "name": type(exc).__name__,
        "message": str(exc),
    }
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        described["status_code"] = status_code
    body = getattr(exc, "body", None)
    if body is not None:
        described["body"] = to_jsonable(body)
    return described


def api_for_path(path: str) -> str:
    """Interaction log name for a request path."""
    if "/images" in path:
        return "images"
    if "/videos" in path:
        return "videos"
    return "responses"


# ============================================================
# Enricher
# ============================================================

Builder = Callable[[BaseException, str], EnrichedErrorResponse]


class ErrorEnricher:
    """
    Builds EnrichedErrorResponse bodies and logs each classified error.

    Usage:
        enricher = ErrorEnricher()
        response, headers = enricher.enrich(exc, request.url.path, body)
        return JSONResponse(response.to_dict(), response.status_code, headers)
    """

    def __init__(
        self,
        interaction_logger: Optional[InteractionLogger] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._interaction_logger = interaction_logger
        self._metrics = metrics

        self.builders: Dict[ErrorKind, Builder] = {
            ErrorKind.HTTP_PASSTHROUGH: self._build_http_passthrough,
            ErrorKind.RATE_LIMIT: self._build_rate_limit,
            ErrorKind.AUTHENTICATION: self._build_authentication,
            ErrorKind.INTERNAL_SERVER: self._build_internal_server,
            ErrorKind.BAD_REQUEST: self._build_bad_request,
            ErrorKind.PERMISSION_DENIED: self._build_permission_denied,
            ErrorKind.NOT_FOUND: self._build_not_found,
            ErrorKind.TIMEOUT: self._build_timeout,
            ErrorKind.GENERIC_API_ERROR: self._build_generic_api_error,
            ErrorKind.NETWORK: self._build_network,
            ErrorKind.UNKNOWN: self._build_unknown,
        }

    @property
    def interaction_logger(self) -> InteractionLogger:
        return self._interaction_logger or get_interaction_logger()

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics or get_metrics()

    def enrich(
        self,
        exc: BaseException,
        path: str,
        request_body: Optional[Dict[str, Any]] = None,
    ) -> Tuple[EnrichedErrorResponse, Dict[str, str]]:
        """
        Classify an exception and build the client response.

        Args:
            exc: The raised exception
            path: Request path, echoed in the body and used to pick the log
            request_body: Upstream request parameters for the log record

        Returns:
            (EnrichedErrorResponse, extra response headers)
        """
        kind = classify_error(exc)
        response = self.builders[kind](exc, path)

        headers: Dict[str, str] = {}
        if kind == ErrorKind.HTTP_PASSTHROUGH and getattr(exc, "headers", None):
            headers.update(exc.headers)
        if response.retry_after_seconds is not None:
            headers["Retry-After"] = str(response.retry_after_seconds)

        self.interaction_logger.log_openai_interaction({
            "api": api_for_path(path),
            "endpoint": path,
            "request": to_jsonable(request_body) if request_body is not None else None,
            "error": {**response.to_dict(), "original_error": describe_exception(exc)},
            "metadata": {},
        })
        self.metrics.record_error(kind.value, response.status_code)

        if kind == ErrorKind.UNKNOWN:
            logger.error("Unhandled error", path=path, error_type=type(exc).__name__, exc_info=exc)

        return response, headers

    # ============================================================
    # Builders
    # ============================================================

    def _build_http_passthrough(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        status_code = exc.status_code
        detail = exc.detail
        if isinstance(detail, str) and detail:
            message = detail
        else:
            try:
                message = HTTPStatus(status_code).phrase
            except ValueError:
                message = "HTTP error"
        return EnrichedErrorResponse(
            status_code=status_code,
            path=path,
            message=message,
            error=detail,
        )

    def _openai_error(
        self,
        exc: BaseException,
        error_type: str,
        code: Optional[str] = None,
        param: Optional[str] = None,
    ) -> Dict[str, Any]:
        block: Dict[str, Any] = {
            "type": error_type,
            "code": code,
            "param": param,
            "message": getattr(exc, "message", None) or str(exc),
            "full_error": describe_exception(exc),
        }
        return {k: v for k, v in block.items() if v is not None}

    def _build_rate_limit(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        headers = error_headers(exc)
        return EnrichedErrorResponse(
            status_code=429,
            path=path,
            message="Rate limit exceeded",
            request_id=extract_request_id(exc),
            error_code=APIErrorCode.RATE_LIMIT_ERROR.value,
            retry_after_seconds=extract_retry_after(headers),
            rate_limit_info=extract_rate_limit_info(headers),
            hint="Please wait before making another request. Check rate_limit_info for detailed limits.",
            openai_error=self._openai_error(exc, OpenAIErrorType.RATE_LIMIT_ERROR.value),
        )

    def _build_authentication(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        return EnrichedErrorResponse(
            status_code=401,
            path=path,
            message="Authentication failed with OpenAI API",
            request_id=extract_request_id(exc),
            error_code=APIErrorCode.AUTHENTICATION_ERROR.value,
            hint='Check your OPENAI_API_KEY environment variable. Ensure it starts with "sk-" and is valid.',
            openai_error=self._openai_error(exc, OpenAIErrorType.AUTHENTICATION_ERROR.value),
        )

    def _build_internal_server(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        return EnrichedErrorResponse(
            status_code=502,
            path=path,
            message="OpenAI API server error",
            request_id=extract_request_id(exc),
            error_code=APIErrorCode.SERVER_ERROR.value,
            hint="This is an issue with OpenAI servers. Retry with exponential backoff.",
            openai_error=self._openai_error(exc, OpenAIErrorType.SERVER_ERROR.value),
        )

    def _build_bad_request(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        code = extract_error_code(exc)
        parameter = extract_parameter(exc)
        openai_error = self._openai_error(
            exc, OpenAIErrorType.INVALID_REQUEST_ERROR.value, code=code, param=parameter,
        )

        mapping = lookup_request_error(code)
        if mapping is not None:
            return EnrichedErrorResponse(
                status_code=mapping.status,
                path=path,
                message=mapping.message,
                request_id=extract_request_id(exc),
                error_code=code,
                parameter=parameter,
                hint=mapping.hint,
                openai_error=openai_error,
            )

        return EnrichedErrorResponse(
            status_code=400,
            path=path,
            message="Invalid request to OpenAI API",
            request_id=extract_request_id(exc),
            error_code=code or APIErrorCode.INVALID_REQUEST_ERROR.value,
            parameter=parameter,
            hint="Check your request parameters. See openai_error for details.",
            openai_error=openai_error,
        )

    def _build_permission_denied(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        return EnrichedErrorResponse(
            status_code=403,
            path=path,
            message="Permission denied for OpenAI API resource",
            request_id=extract_request_id(exc),
            error_code=APIErrorCode.PERMISSION_DENIED_ERROR.value,
            hint="Your API key does not have access to this resource or feature.",
            openai_error=self._openai_error(exc, APIErrorCode.PERMISSION_DENIED_ERROR.value),
        )

    def _build_not_found(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        return EnrichedErrorResponse(
            status_code=404,
            path=path,
            message="Resource not found",
            request_id=extract_request_id(exc),
            error_code=APIErrorCode.NOT_FOUND_ERROR.value,
            hint="The requested resource does not exist. Check the resource ID or URL.",
            openai_error=self._openai_error(exc, APIErrorCode.NOT_FOUND_ERROR.value),
        )

    def _build_timeout(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        return EnrichedErrorResponse(
            status_code=504,
            path=path,
            message="Request to OpenAI API timed out",
            request_id=extract_request_id(exc),
            error_code=APIErrorCode.TIMEOUT_ERROR.value,
            hint="The request exceeded the timeout limit. Try again or increase the timeout setting.",
            openai_error=self._openai_error(exc, APIErrorCode.TIMEOUT_ERROR.value),
        )

    def _build_generic_api_error(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        return EnrichedErrorResponse(
            status_code=getattr(exc, "status_code", None) or 500,
            path=path,
            message=getattr(exc, "message", None) or "Unknown OpenAI API error",
            request_id=extract_request_id(exc),
            error_code=APIErrorCode.API_ERROR.value,
            openai_error=self._openai_error(exc, OpenAIErrorType.API_ERROR.value),
        )

    def _build_network(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        code = network_error_code(exc)
        mapping = lookup_network_error(code.value)
        return EnrichedErrorResponse(
            status_code=mapping.status,
            path=path,
            message=mapping.message,
            error_code=code.value,
            hint=mapping.hint,
        )

    def _build_unknown(self, exc: BaseException, path: str) -> EnrichedErrorResponse:
        message = str(exc) or "An unexpected error occurred"
        name = type(exc).__name__ or "Error"
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return EnrichedErrorResponse(
            status_code=500,
            path=path,
            message=message,
            error=name,
            full_error={"message": message, "name": name, "stack": stack},
        )


_enricher: Optional[ErrorEnricher] = None


def get_error_enricher() -> ErrorEnricher:
    global _enricher
    if _enricher is None:
        _enricher = ErrorEnricher()
    return _enricher
