"""
respgate - Error Code Tables

Closed enumerations of upstream error codes, each mapped to the HTTP
status, message and hint returned to clients. Every enum member has
exactly one entry in its table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


@dataclass(frozen=True)
class ErrorCodeMapping:
    status: int
    message: str
    hint: str


class OpenAIErrorType(str, Enum):
    """``type`` values of the openai_error block."""
    INVALID_REQUEST_ERROR = "invalid_request_error"
    AUTHENTICATION_ERROR = "authentication_error"
    RATE_LIMIT_ERROR = "rate_limit_error"
    API_ERROR = "api_error"
    SERVER_ERROR = "server_error"
    SERVICE_UNAVAILABLE = "service_unavailable"


class APIErrorCode(str, Enum):
    """error_code values for SDK errors without a more specific code."""
    RATE_LIMIT_ERROR = "rate_limit_error"
    AUTHENTICATION_ERROR = "authentication_error"
    INVALID_REQUEST_ERROR = "invalid_request_error"
    SERVER_ERROR = "server_error"
    API_ERROR = "api_error"
    PERMISSION_DENIED_ERROR = "permission_denied_error"
    NOT_FOUND_ERROR = "not_found_error"
    TIMEOUT_ERROR = "timeout_error"


# ============================================================
# Image errors
# ============================================================

class ImageErrorCode(str, Enum):
    INVALID_IMAGE = "invalid_image"
    INVALID_IMAGE_FORMAT = "invalid_image_format"
    INVALID_BASE64_IMAGE = "invalid_base64_image"
    INVALID_IMAGE_URL = "invalid_image_url"
    IMAGE_PARSE_ERROR = "image_parse_error"
    INVALID_IMAGE_MODE = "invalid_image_mode"
    UNSUPPORTED_IMAGE_MEDIA_TYPE = "unsupported_image_media_type"
    IMAGE_TOO_LARGE = "image_too_large"
    IMAGE_TOO_SMALL = "image_too_small"
    IMAGE_FILE_TOO_LARGE = "image_file_too_large"
    EMPTY_IMAGE_FILE = "empty_image_file"
    IMAGE_CONTENT_POLICY_VIOLATION = "image_content_policy_violation"
    FAILED_TO_DOWNLOAD_IMAGE = "failed_to_download_image"
    IMAGE_FILE_NOT_FOUND = "image_file_not_found"


IMAGE_ERROR_CODE_MAPPINGS: Dict[ImageErrorCode, ErrorCodeMapping] = {
    ImageErrorCode.INVALID_IMAGE: ErrorCodeMapping(
        400,
        "Invalid image provided",
        "The image failed validation. Ensure it is a valid image file in a supported format (PNG, JPEG, WebP).",
    ),
    ImageErrorCode.INVALID_IMAGE_FORMAT: ErrorCodeMapping(
        400,
        "Unsupported image format",
        "Only PNG, JPEG, or WebP formats are supported. Convert your image to one of these formats.",
    ),
    ImageErrorCode.INVALID_BASE64_IMAGE: ErrorCodeMapping(
        400,
        "Malformed base64-encoded image",
        "The base64 image data is invalid. Verify the encoding is correct and complete.",
    ),
    ImageErrorCode.INVALID_IMAGE_URL: ErrorCodeMapping(
        400,
        "Invalid image URL",
        "The image URL is malformed or inaccessible. Ensure it is a valid HTTP/HTTPS URL.",
    ),
    ImageErrorCode.IMAGE_PARSE_ERROR: ErrorCodeMapping(
        400,
        "Unable to parse image file",
        "The image file is corrupted or in an unrecognized format. Try re-saving or converting the image.",
    ),
    ImageErrorCode.INVALID_IMAGE_MODE: ErrorCodeMapping(
        400,
        "Unsupported image mode",
        "The image color mode is not supported. Convert to RGB or RGBA mode.",
    ),
    ImageErrorCode.UNSUPPORTED_IMAGE_MEDIA_TYPE: ErrorCodeMapping(
        400,
        "Unsupported image MIME type",
        "The image MIME type is not supported. Use image/png, image/jpeg, or image/webp.",
    ),
    ImageErrorCode.IMAGE_TOO_LARGE: ErrorCodeMapping(
        400,
        "Image exceeds maximum size limit",
        "Maximum image size is 20MB. Resize or compress your image before uploading.",
    ),
    ImageErrorCode.IMAGE_TOO_SMALL: ErrorCodeMapping(
        400,
        "Image is below minimum size requirements",
        "The image dimensions are too small. Ensure minimum dimensions are met for your use case.",
    ),
    ImageErrorCode.IMAGE_FILE_TOO_LARGE: ErrorCodeMapping(
        400,
        "Image file size exceeds limit",
        "The image file is too large. Compress the file or reduce its dimensions.",
    ),
    ImageErrorCode.EMPTY_IMAGE_FILE: ErrorCodeMapping(
        400,
        "Empty image file provided",
        "The image file is empty (0 bytes). Provide a valid image file.",
    ),
    ImageErrorCode.IMAGE_CONTENT_POLICY_VIOLATION: ErrorCodeMapping(
        400,
        "Image violates content policy",
        "The image contains content that violates OpenAI usage policies. Review and modify the image.",
    ),
    ImageErrorCode.FAILED_TO_DOWNLOAD_IMAGE: ErrorCodeMapping(
        502,
        "Failed to download image from URL",
        "Unable to download the image. Verify the URL is accessible and not behind authentication or firewall.",
    ),
    ImageErrorCode.IMAGE_FILE_NOT_FOUND: ErrorCodeMapping(
        404,
        "Image file not found at URL",
        "The image URL returned 404. Verify the URL is correct and the resource exists.",
    ),
}


# ============================================================
# File errors
# ============================================================

class FileErrorCode(str, Enum):
    FILE_TOO_LARGE = "file_too_large"
    INVALID_FILE_FORMAT = "invalid_file_format"
    UNSUPPORTED_FILE = "unsupported_file"
    INVALID_FILE = "invalid_file"
    EMPTY_FILE = "empty_file"
    FILE_NOT_FOUND = "file_not_found"


FILE_ERROR_CODE_MAPPINGS: Dict[FileErrorCode, ErrorCodeMapping] = {
    FileErrorCode.FILE_TOO_LARGE: ErrorCodeMapping(
        413,
        "File exceeds maximum size limit",
        "Maximum file size is 512MB. Split the file or reduce its size before uploading.",
    ),
    FileErrorCode.INVALID_FILE_FORMAT: ErrorCodeMapping(
        400,
        "Invalid file format",
        "The file content does not match the format required for its purpose. Check the file against the purpose's requirements.",
    ),
    FileErrorCode.UNSUPPORTED_FILE: ErrorCodeMapping(
        400,
        "Unsupported file type",
        "This file type cannot be used here. Check the supported file extensions for the tool or purpose.",
    ),
    FileErrorCode.INVALID_FILE: ErrorCodeMapping(
        400,
        "Invalid file provided",
        "The file failed validation. Ensure it is complete and not corrupted.",
    ),
    FileErrorCode.EMPTY_FILE: ErrorCodeMapping(
        400,
        "Empty file provided",
        "The file is empty (0 bytes). Provide a file with content.",
    ),
    FileErrorCode.FILE_NOT_FOUND: ErrorCodeMapping(
        404,
        "File not found",
        "The file ID does not exist or was deleted. Upload the file again or check the ID.",
    ),
}


# ============================================================
# Vector store errors
# ============================================================

class VectorStoreErrorCode(str, Enum):
    VECTOR_STORE_TIMEOUT = "vector_store_timeout"
    VECTOR_STORE_NOT_FOUND = "vector_store_not_found"
    VECTOR_STORE_EXPIRED = "vector_store_expired"
    FILE_BATCH_FAILED = "file_batch_failed"


VECTOR_STORE_ERROR_CODE_MAPPINGS: Dict[VectorStoreErrorCode, ErrorCodeMapping] = {
    VectorStoreErrorCode.VECTOR_STORE_TIMEOUT: ErrorCodeMapping(
        504,
        "File search operation timed out",
        "The vector store search took too long. Try reducing the search scope or simplifying your query.",
    ),
    VectorStoreErrorCode.VECTOR_STORE_NOT_FOUND: ErrorCodeMapping(
        404,
        "Vector store not found",
        "The vector store ID does not exist or was deleted. Check the ID passed to the file_search tool.",
    ),
    VectorStoreErrorCode.VECTOR_STORE_EXPIRED: ErrorCodeMapping(
        410,
        "Vector store has expired",
        "The vector store passed its expiration policy. Create a new vector store or extend expires_after.",
    ),
    VectorStoreErrorCode.FILE_BATCH_FAILED: ErrorCodeMapping(
        502,
        "Vector store file batch failed",
        "One or more files could not be indexed. Check each file's last_error and retry the batch.",
    ),
}


# ============================================================
# Network errors
# ============================================================

class NetworkErrorCode(str, Enum):
    ECONNREFUSED = "ECONNREFUSED"
    ETIMEDOUT = "ETIMEDOUT"
    ECONNRESET = "ECONNRESET"
    ENOTFOUND = "ENOTFOUND"
    EHOSTUNREACH = "EHOSTUNREACH"


NETWORK_ERROR_CODE_MAPPINGS: Dict[NetworkErrorCode, ErrorCodeMapping] = {
    NetworkErrorCode.ECONNREFUSED: ErrorCodeMapping(
        503,
        "Cannot connect to OpenAI API",
        "Connection refused. Verify your network connection and that OpenAI services are accessible.",
    ),
    NetworkErrorCode.ETIMEDOUT: ErrorCodeMapping(
        504,
        "Request to OpenAI API timed out",
        "The request exceeded the timeout limit. Try again or increase the timeout setting.",
    ),
    NetworkErrorCode.ECONNRESET: ErrorCodeMapping(
        504,
        "Connection to OpenAI API was reset",
        "The connection was interrupted. This is usually temporary; retry with exponential backoff.",
    ),
    NetworkErrorCode.ENOTFOUND: ErrorCodeMapping(
        503,
        "Cannot resolve OpenAI API hostname",
        "DNS resolution failed. Check your network connection and DNS settings.",
    ),
    NetworkErrorCode.EHOSTUNREACH: ErrorCodeMapping(
        503,
        "OpenAI API host unreachable",
        "Cannot reach the OpenAI API. Check your network connection and firewall settings.",
    ),
}


# Bad-request codes are looked up across these tables in order.
REQUEST_ERROR_TABLES = (
    (ImageErrorCode, IMAGE_ERROR_CODE_MAPPINGS),
    (FileErrorCode, FILE_ERROR_CODE_MAPPINGS),
    (VectorStoreErrorCode, VECTOR_STORE_ERROR_CODE_MAPPINGS),
)


def lookup_request_error(code: Optional[str]) -> Optional[ErrorCodeMapping]:
    """Mapping for a bad-request error code, or None when the code is not tabled."""
    if not code:
        return None
    for enum_type, table in REQUEST_ERROR_TABLES:
        try:
            return table[enum_type(code)]
        except ValueError:
            continue
    return None


def lookup_network_error(code: Optional[str]) -> Optional[ErrorCodeMapping]:
    if not code:
        return None
    try:
        return NETWORK_ERROR_CODE_MAPPINGS[NetworkErrorCode(code)]
    except ValueError:
        return None
