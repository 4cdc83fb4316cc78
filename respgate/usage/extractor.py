"""
respgate - Usage Extraction

Pulls token usage and response metadata out of a finished Responses API
object and turns usage into a cost estimate. The completed-event handler
only sees these three calls through ``UsageEstimator``.
"""

from typing import Any, Dict, Optional

from ..core.serialization import as_event_dict
from .pricing import PricingCatalog, get_pricing_catalog


DEFAULT_COST_MODEL = "gpt-4o"

# Response fields copied verbatim into completion metadata when present.
_METADATA_FIELDS = (
    "status",
    "error",
    "incomplete_details",
    "conversation",
    "background",
    "max_output_tokens",
    "previous_response_id",
    "prompt_cache_key",
    "service_tier",
    "truncation",
    "safety_identifier",
    "metadata",
)

# Fields whose falsy values carry no information.
_TRUTHY_ONLY_FIELDS = {"status", "error", "incomplete_details", "conversation"}


def extract_usage(response: Any) -> Optional[Dict[str, int]]:
    """
    Summarize token usage of a response.

    Returns:
        ``{prompt_tokens, completion_tokens, total_tokens}`` plus
        ``cached_tokens``/``reasoning_tokens`` when reported, or None
        when the response carries no usage
    """
    usage = as_event_dict(response).get("usage")
    if not isinstance(usage, dict) or not usage:
        return None

    summary = {
        "prompt_tokens": usage.get("input_tokens"),
        "completion_tokens": usage.get("output_tokens"),
        "total_tokens": usage.get("total_tokens"),
    }

    input_details = usage.get("input_tokens_details")
    if isinstance(input_details, dict) and "cached_tokens" in input_details:
        summary["cached_tokens"] = input_details["cached_tokens"]

    output_details = usage.get("output_tokens_details")
    if isinstance(output_details, dict) and "reasoning_tokens" in output_details:
        summary["reasoning_tokens"] = output_details["reasoning_tokens"]

    return summary


def extract_response_metadata(response: Any) -> Dict[str, Any]:
    """Collect the status and request-option fields of a response."""
    data = as_event_dict(response)
    metadata: Dict[str, Any] = {}

    for key in _METADATA_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key in _TRUTHY_ONLY_FIELDS and not value:
            continue
        metadata[key] = value

    text = data.get("text")
    if isinstance(text, dict) and "verbosity" in text:
        metadata["text_verbosity"] = text["verbosity"]

    return metadata


def _token_count(usage: Dict[str, Any], *keys: str) -> int:
    for key in keys:
        value = usage.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value:
            return value
    return 0


def estimate_cost(
    usage: Optional[Dict[str, Any]],
    model: Optional[str] = None,
    catalog: Optional[PricingCatalog] = None,
) -> float:
    """
    Estimate the USD cost of a usage summary.

    Accepts both Responses API names (``input_tokens``, ``output_tokens``,
    ``*_tokens_details``) and the summary names produced by
    :func:`extract_usage` (``prompt_tokens``, ``completion_tokens``,
    ``cached_tokens``).

    Returns:
        Cost in USD; 0.0 without usage or for an unpriced model
    """
    if not usage:
        return 0.0

    catalog = catalog or get_pricing_catalog()

    input_tokens = _token_count(usage, "input_tokens", "prompt_tokens")
    output_tokens = _token_count(usage, "output_tokens", "completion_tokens")

    cached_tokens = _token_count(usage, "cached_tokens")
    details = usage.get("input_tokens_details")
    if not cached_tokens and isinstance(details, dict):
        cached_tokens = _token_count(details, "cached_tokens")

    return catalog.calculate_cost(
        model=model or DEFAULT_COST_MODEL,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cached_tokens=cached_tokens,
    )


class UsageEstimator:
    """
    Usage and cost collaborator handed to the lifecycle handlers.

    Wraps the module functions so tests can swap in a double.
    """

    def __init__(self, catalog: Optional[PricingCatalog] = None):
        self.catalog = catalog or get_pricing_catalog()

    def extract_usage(self, response: Any) -> Optional[Dict[str, int]]:
        return extract_usage(response)

    def extract_response_metadata(self, response: Any) -> Dict[str, Any]:
        return extract_response_metadata(response)

    def estimate_cost(self, usage: Optional[Dict[str, Any]], model: Optional[str] = None) -> float:
        return estimate_cost(usage, model, catalog=self.catalog)
