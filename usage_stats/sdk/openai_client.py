"""
Tracked OpenAI client wrapper.

Records request and token usage into a stats engine without modifying behavior.
"""

from typing import Any, Dict, List, Optional

from openai import OpenAI

from ..core.engine import UsageStatsEngine


class TrackedOpenAI:
    """OpenAI client wrapper that records every chat call.

    Successful calls are recorded with the token counts reported by the
    API. Failed calls are recorded as one failed request with no tokens,
    and the original exception is re-raised.
    """

    def __init__(self, engine: UsageStatsEngine, model: str, api_key: Optional[str] = None):
        """Initialize tracked OpenAI client.

        Args:
            engine: Initialized stats engine to record into
            model: OpenAI model name (required)
            api_key: API key passed to OpenAI and used as the usage credential.
                When omitted the OpenAI client resolves its own key.

        Raises:
            ValueError: If model is missing/empty
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.engine = engine
        self.model = model
        self.client = OpenAI(api_key=api_key) if api_key else OpenAI()
        resolved_key = api_key or getattr(self.client, "api_key", None)
        self.credential = resolved_key if isinstance(resolved_key, str) else ""

    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any
    ) -> Any:
        """Create chat completion with usage recording.

        Args:
            messages: List of message dictionaries (required)
            temperature: Sampling temperature (optional)
            max_tokens: Maximum tokens to generate (optional)
            **kwargs: Additional OpenAI parameters

        Returns:
            OpenAI chat completion response, unchanged

        Raises:
            ValueError: If messages is empty
            OpenAI API errors: Propagated after the failure is recorded
        """
        if not messages:
            raise ValueError("messages is required and cannot be empty")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs
            )
        except Exception:
            self.engine.record_usage(self.credential, self.model, 1, 0, 0, False)
            raise

        usage = response.usage
        prompt_tokens = usage.prompt_tokens if usage else 0
        completion_tokens = usage.completion_tokens if usage else 0

        self.engine.record_usage(
            self.credential,
            self.model,
            1,
            prompt_tokens,
            completion_tokens,
            True
        )
        return response
