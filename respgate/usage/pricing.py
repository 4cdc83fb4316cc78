"""
respgate - Pricing Catalog

Token pricing for the models the gateway estimates cost for.
Prices are USD per 1 million tokens unless otherwise noted.

Updated: January 2025
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass
class ModelPrice:
    """
    Pricing information for a single model.

    All token prices are in USD per 1 million tokens.
    """
    model_name: str

    input_per_1m: float
    output_per_1m: float

    # Cached input tokens are billed at a discount
    cached_input_per_1m: Optional[float] = None

    def calculate_cost(
        self,
        input_tokens: int,
        output_tokens: int,
        cached_tokens: int = 0,
    ) -> float:
        """
        Calculate total cost for token usage.

        Args:
            input_tokens: Total input tokens, cached ones included
            output_tokens: Output tokens, reasoning tokens included
            cached_tokens: Portion of input_tokens served from the prompt cache

        Returns:
            Total cost in USD
        """
        cached_tokens = min(max(cached_tokens, 0), input_tokens)

        if self.cached_input_per_1m is not None:
            uncached = input_tokens - cached_tokens
            input_cost = (uncached / 1_000_000) * self.input_per_1m
            input_cost += (cached_tokens / 1_000_000) * self.cached_input_per_1m
        else:
            input_cost = (input_tokens / 1_000_000) * self.input_per_1m

        output_cost = (output_tokens / 1_000_000) * self.output_per_1m
        return input_cost + output_cost


class PricingCatalog:
    """
    Catalog of model pricing.

    Unknown models cost 0.0 rather than failing the request.
    """

    def __init__(self):
        self._prices: Dict[str, ModelPrice] = {}
        self._load_default_pricing()

    def _load_default_pricing(self):
        self._add_price(ModelPrice(
            model_name="gpt-4o",
            input_per_1m=2.50,
            output_per_1m=10.00,
            cached_input_per_1m=1.25,
        ))

        self._add_price(ModelPrice(
            model_name="gpt-4o-mini",
            input_per_1m=0.15,
            output_per_1m=0.60,
            cached_input_per_1m=0.075,
        ))

        self._add_price(ModelPrice(
            model_name="o1",
            input_per_1m=15.00,
            output_per_1m=60.00,
            cached_input_per_1m=7.50,
        ))

        self._add_price(ModelPrice(
            model_name="o3-mini",
            input_per_1m=1.10,
            output_per_1m=4.40,
            cached_input_per_1m=0.55,
        ))

        self._add_price(ModelPrice(
            model_name="gpt-5",
            input_per_1m=1.25,
            output_per_1m=10.00,
            cached_input_per_1m=0.625,
        ))

        self._add_price(ModelPrice(
            model_name="gpt-image-1",
            input_per_1m=2.50,
            output_per_1m=10.00,
        ))

    def _add_price(self, price: ModelPrice):
        self._prices[price.model_name] = price

    def get_price(self, model: str) -> Optional[ModelPrice]:
        """
        Get pricing for a model.

        Dated snapshots ("gpt-4o-2024-08-06") resolve to their base model.

        Args:
            model: Model name as reported by the API

        Returns:
            ModelPrice if found, None otherwise
        """
        if not model:
            return None
        if model in self._prices:
            return self._prices[model]

        # Longest matching base name wins so gpt-4o-mini-* is not priced as gpt-4o.
        candidates = [
            name for name in self._prices
            if model.startswith(f"{name}-")
        ]
        if candidates:
            return self._prices[max(candidates, key=len)]
        return None

    def calculate_cost(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        cached_tokens: int = 0,
    ) -> float:
        """Calculate cost for a request, or 0.0 if the model is unknown."""
        price = self.get_price(model)
        if not price:
            return 0.0
        return price.calculate_cost(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cached_tokens=cached_tokens,
        )

    def list_models(self) -> List[str]:
        """Names of all priced models."""
        return list(self._prices)

    def is_supported(self, model: str) -> bool:
        return self.get_price(model) is not None


# Global catalog instance
_catalog = PricingCatalog()


def get_pricing_catalog() -> PricingCatalog:
    return _catalog


def get_model_price(model: str) -> Optional[ModelPrice]:
    """Get pricing for a model."""
    return _catalog.get_price(model)


def calculate_cost(
    model: str,
    input_tokens: int,
    output_tokens: int,
    cached_tokens: int = 0,
) -> float:
    """Calculate cost for a request."""
    return _catalog.calculate_cost(
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cached_tokens=cached_tokens,
    )
