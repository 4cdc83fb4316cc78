"""
respgate - Usage System Tests

Tests for the usage module covering:
- Pricing catalog and snapshot resolution
- Usage extraction from finished responses
- Response metadata extraction
- Cost estimation
"""

import pytest

from respgate.usage import (
    ModelPrice,
    PricingCatalog,
    UsageEstimator,
    calculate_cost,
    estimate_cost,
    extract_response_metadata,
    extract_usage,
    get_model_price,
)


# ============================================================
# Pricing Tests
# ============================================================

class TestModelPrice:
    """Test ModelPrice calculations."""

    def test_calculate_cost(self):
        """Test basic cost calculation."""
        price = ModelPrice(model_name="m", input_per_1m=2.0, output_per_1m=8.0)
        assert price.calculate_cost(1_000_000, 500_000) == pytest.approx(6.0)

    def test_calculate_cost_with_cached(self):
        """Cached tokens are a discounted subset of input tokens."""
        price = ModelPrice(model_name="m", input_per_1m=2.0, output_per_1m=8.0, cached_input_per_1m=1.0)
        cost = price.calculate_cost(1_000_000, 0, cached_tokens=400_000)
        assert cost == pytest.approx(0.6 * 2.0 + 0.4 * 1.0)

    def test_cached_tokens_clamped(self):
        """More cached than input tokens never produces a negative input charge."""
        price = ModelPrice(model_name="m", input_per_1m=2.0, output_per_1m=8.0, cached_input_per_1m=1.0)
        assert price.calculate_cost(100, 0, cached_tokens=1_000) == pytest.approx(100 / 1_000_000)

    def test_cached_without_cached_price(self):
        price = ModelPrice(model_name="m", input_per_1m=2.0, output_per_1m=8.0)
        assert price.calculate_cost(1_000_000, 0, cached_tokens=500_000) == pytest.approx(2.0)


class TestPricingCatalog:
    """Test PricingCatalog lookups."""

    @pytest.mark.parametrize("model,expected", [
        ("gpt-4o", 2.50 + 10.00),
        ("gpt-4o-mini", 0.15 + 0.60),
        ("o1", 15.00 + 60.00),
        ("o3-mini", 1.10 + 4.40),
        ("gpt-5", 1.25 + 10.00),
        ("gpt-image-1", 2.50 + 10.00),
    ])
    def test_known_models(self, model, expected):
        """One million tokens each way costs input + output rate."""
        catalog = PricingCatalog()
        assert catalog.calculate_cost(model, 1_000_000, 1_000_000) == pytest.approx(expected)

    def test_snapshot_resolves_to_base(self):
        catalog = PricingCatalog()
        assert catalog.get_price("gpt-4o-2024-08-06").model_name == "gpt-4o"

    def test_longest_base_wins(self):
        """gpt-4o-mini snapshots are not priced as gpt-4o."""
        catalog = PricingCatalog()
        assert catalog.get_price("gpt-4o-mini-2024-07-18").model_name == "gpt-4o-mini"

    def test_unknown_model(self):
        catalog = PricingCatalog()
        assert catalog.get_price("claude-3") is None
        assert catalog.get_price("") is None
        assert catalog.calculate_cost("claude-3", 1000, 1000) == 0.0
        assert not catalog.is_supported("claude-3")

    def test_list_models(self):
        models = PricingCatalog().list_models()
        assert {"gpt-4o", "gpt-4o-mini", "o1", "o3-mini", "gpt-5", "gpt-image-1"} <= set(models)

    def test_module_functions(self):
        assert get_model_price("gpt-5").input_per_1m == 1.25
        assert calculate_cost("gpt-5", 1_000_000, 0) == pytest.approx(1.25)


# ============================================================
# Extraction Tests
# ============================================================

class TestExtractUsage:
    """Test usage summaries."""

    def test_full_usage(self, completed_response):
        completed_response["usage"]["input_tokens_details"]["cached_tokens"] = 4
        completed_response["usage"]["output_tokens_details"]["reasoning_tokens"] = 2

        assert extract_usage(completed_response) == {
            "prompt_tokens": 12,
            "completion_tokens": 7,
            "total_tokens": 19,
            "cached_tokens": 4,
            "reasoning_tokens": 2,
        }

    def test_without_details(self):
        usage = extract_usage({"usage": {"input_tokens": 1, "output_tokens": 2, "total_tokens": 3}})
        assert usage == {"prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 3}

    @pytest.mark.parametrize("response", [{}, {"usage": None}, {"usage": {}}, None, "text"])
    def test_no_usage(self, response):
        assert extract_usage(response) is None


class TestExtractResponseMetadata:
    """Test status and option metadata."""

    def test_fields_copied(self, completed_response):
        completed_response["text"] = {"format": {"type": "text"}, "verbosity": "low"}
        completed_response["max_output_tokens"] = 256
        metadata = extract_response_metadata(completed_response)

        assert metadata == {
            "status": "completed",
            "background": False,
            "max_output_tokens": 256,
            "service_tier": "default",
            "truncation": "disabled",
            "metadata": {},
            "text_verbosity": "low",
        }

    def test_falsy_status_fields_skipped(self):
        metadata = extract_response_metadata({
            "status": "",
            "error": None,
            "incomplete_details": None,
            "conversation": None,
            "previous_response_id": None,
        })
        assert metadata == {"previous_response_id": None}

    def test_error_kept(self):
        error = {"code": "server_error", "message": "boom"}
        assert extract_response_metadata({"status": "failed", "error": error})["error"] == error


class TestEstimateCost:
    """Test cost estimation from usage summaries."""

    def test_summary_names(self):
        usage = {"prompt_tokens": 1_000_000, "completion_tokens": 1_000_000, "cached_tokens": 0}
        assert estimate_cost(usage, "gpt-4o") == pytest.approx(12.5)

    def test_api_names_with_cached_details(self):
        usage = {
            "input_tokens": 1_000_000,
            "output_tokens": 0,
            "input_tokens_details": {"cached_tokens": 1_000_000},
        }
        assert estimate_cost(usage, "gpt-4o") == pytest.approx(1.25)

    def test_defaults_to_gpt_4o(self):
        usage = {"prompt_tokens": 1_000_000, "completion_tokens": 0}
        assert estimate_cost(usage) == pytest.approx(2.5)

    def test_no_usage(self):
        assert estimate_cost(None, "gpt-4o") == 0.0
        assert estimate_cost({}, "gpt-4o") == 0.0

    def test_unknown_model(self):
        assert estimate_cost({"prompt_tokens": 100, "completion_tokens": 100}, "mystery") == 0.0

    def test_estimator_uses_its_catalog(self):
        catalog = PricingCatalog()
        catalog._add_price(ModelPrice(model_name="house-model", input_per_1m=1.0, output_per_1m=1.0))
        estimator = UsageEstimator(catalog=catalog)

        cost = estimator.estimate_cost({"prompt_tokens": 1_000_000, "completion_tokens": 1_000_000}, "house-model")
        assert cost == pytest.approx(2.0)
