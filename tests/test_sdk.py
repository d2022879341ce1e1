"""
Unit tests for SDK layer.

Tests OpenAI client wrapper behavior and usage recording.
"""

from unittest.mock import Mock, patch

import pytest

from usage_stats.core.engine import UsageStatsEngine
from usage_stats.sdk.openai_client import TrackedOpenAI
from usage_stats.storage.models import UsageCounter


def _mock_response(prompt_tokens: int, completion_tokens: int) -> Mock:
    response = Mock()
    response.usage.prompt_tokens = prompt_tokens
    response.usage.completion_tokens = completion_tokens
    response.usage.total_tokens = prompt_tokens + completion_tokens
    return response


class TestTrackedOpenAI:
    """Test TrackedOpenAI client wrapper."""

    @patch('usage_stats.sdk.openai_client.OpenAI')
    def test_init_success(self, mock_openai_class, engine):
        """Test successful initialization."""
        mock_openai_class.return_value = Mock()

        client = TrackedOpenAI(engine, model="gpt-4", api_key="sk-ABCDEFGH")

        assert client.model == "gpt-4"
        assert client.credential == "sk-ABCDEFGH"
        assert client.engine is engine
        mock_openai_class.assert_called_once_with(api_key="sk-ABCDEFGH")

    @patch('usage_stats.sdk.openai_client.OpenAI')
    def test_init_uses_client_resolved_key(self, mock_openai_class, engine):
        """Without an explicit key the OpenAI client's own key is tracked."""
        mock_client = Mock()
        mock_client.api_key = "sk-FROMENV123"
        mock_openai_class.return_value = mock_client

        client = TrackedOpenAI(engine, model="gpt-4")

        assert client.credential == "sk-FROMENV123"
        mock_openai_class.assert_called_once_with()

    def test_init_missing_model(self, engine):
        """Test initialization fails with missing model."""
        with pytest.raises(ValueError, match="model is required"):
            TrackedOpenAI(engine, model="")

        with pytest.raises(ValueError, match="model is required"):
            TrackedOpenAI(engine, model=None)

    @patch('usage_stats.sdk.openai_client.OpenAI')
    def test_chat_success_records_usage(self, mock_openai_class, engine):
        """Test successful chat call records requests and tokens."""
        mock_response = _mock_response(100, 50)
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = mock_response
        mock_openai_class.return_value = mock_client

        client = TrackedOpenAI(engine, model="gpt-4", api_key="sk-ABCDEFGH")
        messages = [{"role": "user", "content": "Hello"}]
        response = client.chat(messages=messages)

        mock_client.chat.completions.create.assert_called_once_with(
            model="gpt-4",
            messages=messages,
            temperature=None,
            max_tokens=None
        )
        assert response == mock_response

        stats = engine.get_daily()
        assert stats.requests.total == 1
        assert stats.requests.success == 1
        assert stats.tokens.prompt == 100
        assert stats.tokens.completion == 50
        assert stats.models["gpt-4"] == UsageCounter(requests=1, tokens=150)
        assert engine.get_credential_usage("sk-ABCDEFGH") == UsageCounter(requests=1, tokens=150)

    @patch('usage_stats.sdk.openai_client.OpenAI')
    def test_chat_with_optional_parameters(self, mock_openai_class, engine):
        """Test chat call with optional parameters."""
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = _mock_response(200, 100)
        mock_openai_class.return_value = mock_client

        client = TrackedOpenAI(engine, model="gpt-3.5-turbo", api_key="sk-ABCDEFGH")
        messages = [{"role": "user", "content": "Hello"}]
        client.chat(messages=messages, temperature=0.7, max_tokens=1000)

        mock_client.chat.completions.create.assert_called_once_with(
            model="gpt-3.5-turbo",
            messages=messages,
            temperature=0.7,
            max_tokens=1000
        )
        assert engine.get_daily().tokens.total == 300

    @patch('usage_stats.sdk.openai_client.OpenAI')
    def test_chat_failure_records_failed_request(self, mock_openai_class, engine):
        """Test OpenAI API failure is recorded and re-raised."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = Exception("API Error")
        mock_openai_class.return_value = mock_client

        client = TrackedOpenAI(engine, model="gpt-4", api_key="sk-ABCDEFGH")

        with pytest.raises(Exception, match="API Error"):
            client.chat(messages=[{"role": "user", "content": "Hello"}])

        stats = engine.get_daily()
        assert stats.requests.total == 1
        assert stats.requests.failed == 1
        assert stats.tokens.total == 0

    @patch('usage_stats.sdk.openai_client.OpenAI')
    def test_chat_missing_usage_records_zero_tokens(self, mock_openai_class, engine):
        """A response without usage still counts as a successful request."""
        mock_response = Mock()
        mock_response.usage = None
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = mock_response
        mock_openai_class.return_value = mock_client

        client = TrackedOpenAI(engine, model="gpt-4", api_key="sk-ABCDEFGH")
        client.chat(messages=[{"role": "user", "content": "Hello"}])

        stats = engine.get_daily()
        assert stats.requests.success == 1
        assert stats.tokens.total == 0

    @patch('usage_stats.sdk.openai_client.OpenAI')
    def test_chat_empty_messages(self, mock_openai_class, engine):
        """Test empty messages are rejected before any call."""
        mock_client = Mock()
        mock_openai_class.return_value = mock_client

        client = TrackedOpenAI(engine, model="gpt-4", api_key="sk-ABCDEFGH")

        with pytest.raises(ValueError, match="messages is required"):
            client.chat(messages=[])

        mock_client.chat.completions.create.assert_not_called()
        assert engine.get_daily().requests.total == 0

    @patch('usage_stats.sdk.openai_client.OpenAI')
    def test_chat_on_uninitialized_engine_raises(self, mock_openai_class, data_path, clock):
        """Recording into an engine that was never initialized is an error."""
        from usage_stats.storage.file_store import DocumentStore

        mock_client = Mock()
        mock_client.chat.completions.create.return_value = _mock_response(1, 1)
        mock_openai_class.return_value = mock_client

        engine = UsageStatsEngine(DocumentStore(data_path, clock=clock), clock=clock)
        client = TrackedOpenAI(engine, model="gpt-4", api_key="sk-ABCDEFGH")

        with pytest.raises(RuntimeError, match="not initialized"):
            client.chat(messages=[{"role": "user", "content": "Hello"}])
