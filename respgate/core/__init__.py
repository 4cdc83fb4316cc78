"""
respgate - Core Module

Error classification, error code tables and serialization helpers.
"""

from .error_codes import (
    ErrorCodeMapping,
    FileErrorCode,
    ImageErrorCode,
    NetworkErrorCode,
    VectorStoreErrorCode,
    FILE_ERROR_CODE_MAPPINGS,
    IMAGE_ERROR_CODE_MAPPINGS,
    NETWORK_ERROR_CODE_MAPPINGS,
    VECTOR_STORE_ERROR_CODE_MAPPINGS,
)
from .errors import (
    EnrichedErrorResponse,
    ErrorEnricher,
    ErrorKind,
    RateLimitInfo,
    classify_error,
    extract_error_code,
    extract_parameter,
    extract_rate_limit_info,
    extract_retry_after,
    get_error_enricher,
)
from .serialization import as_event_dict, to_jsonable

__all__ = [
    # Error codes
    "ErrorCodeMapping",
    "FileErrorCode",
    "ImageErrorCode",
    "NetworkErrorCode",
    "VectorStoreErrorCode",
    "FILE_ERROR_CODE_MAPPINGS",
    "IMAGE_ERROR_CODE_MAPPINGS",
    "NETWORK_ERROR_CODE_MAPPINGS",
    "VECTOR_STORE_ERROR_CODE_MAPPINGS",
    # Errors
    "EnrichedErrorResponse",
    "ErrorEnricher",
    "ErrorKind",
    "RateLimitInfo",
    "classify_error",
    "extract_error_code",
    "extract_parameter",
    "extract_rate_limit_info",
    "extract_retry_after",
    "get_error_enricher",
    # Serialization
    "as_event_dict",
    "to_jsonable",
]
