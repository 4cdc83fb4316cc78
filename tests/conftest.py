"""
respgate - Pytest Configuration

Configures:
- Isolated metrics registry and interaction log per test
- Shared stream fixtures for handler tests
"""

import logging
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest
from prometheus_client import CollectorRegistry

from respgate.api.dependencies import reset_dependencies
from respgate.config import reset_config
from respgate.observability import metrics as metrics_module
from respgate.observability.logging import InteractionLogger, set_interaction_logger
from respgate.observability.metrics import MetricsCollector, set_metrics
from respgate.streaming.dispatcher import EventDispatcher
from respgate.streaming.state import StreamState


# ============================================================
# Process-wide state isolation
# ============================================================

@pytest.fixture(autouse=True)
def metrics_collector():
    """Fresh Prometheus registry per test so counters start at zero."""
    previous = metrics_module._metrics_instance
    collector = MetricsCollector(CollectorRegistry())
    set_metrics(collector)
    yield collector
    if previous is not None:
        set_metrics(previous)


@pytest.fixture(autouse=True)
def interaction_log_dir(tmp_path):
    """Route interaction logs into the test's temp dir."""
    log_dir = tmp_path / "interaction-logs"
    set_interaction_logger(InteractionLogger(log_dir=str(log_dir)))
    yield log_dir
    set_interaction_logger(None)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop cached config and API dependencies around each test."""
    reset_config()
    reset_dependencies()
    yield
    reset_config()
    reset_dependencies()


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    yield


# ============================================================
# Stream fixtures
# ============================================================

@pytest.fixture
def interaction_logger():
    """Interaction logger double that records calls."""
    return MagicMock(spec=InteractionLogger)


@pytest.fixture
def state():
    return StreamState()


@pytest.fixture
def dispatcher(interaction_logger):
    return EventDispatcher(logger=interaction_logger)


@pytest.fixture
def completed_response() -> Dict[str, Any]:
    """Final response object of a short gpt-4o completion."""
    return {
        "id": "resp_123",
        "object": "response",
        "model": "gpt-4o",
        "status": "completed",
        "output": [
            {
                "type": "message",
                "role": "assistant",
                "content": [{"type": "output_text", "text": "1, 2, 3"}],
            }
        ],
        "usage": {
            "input_tokens": 12,
            "output_tokens": 7,
            "total_tokens": 19,
            "input_tokens_details": {"cached_tokens": 0},
            "output_tokens_details": {"reasoning_tokens": 0},
        },
        "service_tier": "default",
        "truncation": "disabled",
        "background": False,
        "metadata": {},
    }


@pytest.fixture
def count_to_three_events(completed_response) -> List[Dict[str, Any]]:
    """Upstream events for the prompt "Count to 3"."""
    return [
        {
            "type": "response.created",
            "sequence_number": 0,
            "response": {"id": "resp_123", "model": "gpt-4o", "status": "in_progress"},
        },
        {"type": "response.in_progress", "sequence_number": 1, "response": {"id": "resp_123"}},
        {"type": "response.output_text.delta", "sequence_number": 2, "delta": "1, ", "item_id": "msg_1"},
        {"type": "response.output_text.delta", "sequence_number": 3, "delta": "2, ", "item_id": "msg_1"},
        {"type": "response.output_text.delta", "sequence_number": 4, "delta": "3", "item_id": "msg_1"},
        {"type": "response.output_text.done", "sequence_number": 5, "text": "1, 2, 3", "item_id": "msg_1"},
        {"type": "response.completed", "sequence_number": 6, "response": completed_response},
    ]
