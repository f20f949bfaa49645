"""
OpenAI service client and reply generation.

Provides centralized OpenAI/Azure OpenAI integration with automatic
client configuration and response metrics tracking.
"""

from .client import (
    openai_client,
    call_response_with_metrics,
    MODEL_PRICING,
)
from .replies import OpenAIReplyGenerator

__all__ = [
    "openai_client",
    "call_response_with_metrics",
    "MODEL_PRICING",
    "OpenAIReplyGenerator",
]
