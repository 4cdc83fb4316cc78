"""
respgate - Usage Module

Token usage extraction and cost estimation for completed responses.
"""

from .pricing import (
    ModelPrice,
    PricingCatalog,
    get_pricing_catalog,
    get_model_price,
    calculate_cost,
)
from .extractor import (
    UsageEstimator,
    extract_usage,
    extract_response_metadata,
    estimate_cost,
)

__all__ = [
    # Pricing
    "ModelPrice",
    "PricingCatalog",
    "get_pricing_catalog",
    "get_model_price",
    "calculate_cost",
    # Extraction
    "UsageEstimator",
    "extract_usage",
    "extract_response_metadata",
    "estimate_cost",
]
