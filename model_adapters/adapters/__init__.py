"""AI provider adapters."""

from .base import BaseAdapter, HTTPAdapter, AdapterConfig, AIResponse, Message
from .openai import OpenAIAdapter, GrokAdapter
from .anthropic import AnthropicAdapter
from .openrouter import OpenRouterAdapter, MODEL_ID_SEPARATOR
from .cursor import CursorAdapter

__all__ = [
    "BaseAdapter",
    "HTTPAdapter",
    "AdapterConfig",
    "AIResponse",
    "Message",
    "OpenAIAdapter",
    "GrokAdapter",
    "AnthropicAdapter",
    "OpenRouterAdapter",
    "MODEL_ID_SEPARATOR",
    "CursorAdapter",
]
