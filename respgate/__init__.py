"""
respgate - Responses API Gateway

Fronts the OpenAI Responses API with a normalized SSE streaming protocol
and a single enriched error envelope for every upstream failure.
"""

__version__ = "1.0.0"
__author__ = "respgate"
