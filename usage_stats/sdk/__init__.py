"""
SDK for usage stats.

Provides client wrappers that record usage automatically.
"""

from .openai_client import TrackedOpenAI

__all__ = ["TrackedOpenAI"]
