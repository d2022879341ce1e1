"""
Unit tests for usage aggregation.

Tests how one observation is folded into daily, hourly, model and
credential counters.
"""

from datetime import datetime, timedelta, timezone

import pytest

from usage_stats.core.aggregator import UsageObservation, apply_usage
from usage_stats.core.retention import RetentionStore
from usage_stats.storage.models import UsageCounter, UsageDocument

MOMENT = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


def _observation(
    credential="sk-ABCDEFGH",
    model="gpt-x",
    request_count=1,
    prompt_tokens=10,
    completion_tokens=5,
    success=True
) -> UsageObservation:
    return UsageObservation(
        credential=credential,
        model=model,
        request_count=request_count,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        success=success
    )


class TestUsageObservation:
    """Test observation validation."""

    def test_total_tokens(self):
        assert _observation(prompt_tokens=100, completion_tokens=50).total_tokens == 150

    def test_negative_request_count_rejected(self):
        with pytest.raises(ValueError, match="request_count cannot be negative"):
            _observation(request_count=-1)

    def test_negative_prompt_tokens_rejected(self):
        with pytest.raises(ValueError, match="prompt_tokens cannot be negative"):
            _observation(prompt_tokens=-1)

    def test_negative_completion_tokens_rejected(self):
        with pytest.raises(ValueError, match="completion_tokens cannot be negative"):
            _observation(completion_tokens=-1)

    def test_zero_counts_allowed(self):
        observation = _observation(request_count=0, prompt_tokens=0, completion_tokens=0)
        assert observation.total_tokens == 0


class TestApplyUsage:
    """Test folding observations into a document."""

    def setup_method(self):
        self.document = UsageDocument.create("2024-01-15", MOMENT.isoformat())
        self.retention = RetentionStore(self.document.daily_stats)

    def test_success_and_failure_scenario(self):
        """Three successes and one failure add up across every bucket."""
        apply_usage(self.document, self.retention, _observation(
            request_count=3, prompt_tokens=100, completion_tokens=50, success=True
        ), MOMENT)
        apply_usage(self.document, self.retention, _observation(
            request_count=1, prompt_tokens=10, completion_tokens=5, success=False
        ), MOMENT)

        record = self.retention.find("2024-01-15")
        assert record.requests.total == 4
        assert record.requests.success == 3
        assert record.requests.failed == 1
        assert record.tokens.total == 165
        assert record.tokens.prompt == 110
        assert record.tokens.completion == 55
        assert record.models["gpt-x"] == UsageCounter(requests=4, tokens=165)
        assert record.hourly[10].requests == 4
        assert record.hourly[10].tokens == 165
        assert self.document.keys_usage["sk-ABC******"]["2024-01-15"] == UsageCounter(
            requests=4, tokens=165
        )

    def test_invariants_hold_after_each_call(self):
        """Request and token splits always sum to their totals."""
        record = self.retention.find("2024-01-15")
        for index in range(20):
            apply_usage(self.document, self.retention, _observation(
                request_count=index % 4,
                prompt_tokens=index * 7,
                completion_tokens=index * 3,
                success=index % 3 != 0
            ), MOMENT)
            assert record.requests.success + record.requests.failed == record.requests.total
            assert record.tokens.prompt + record.tokens.completion == record.tokens.total

    def test_empty_model_skipped(self):
        apply_usage(self.document, self.retention, _observation(model=""), MOMENT)
        assert self.retention.find("2024-01-15").models == {}

    def test_empty_credential_skipped(self):
        apply_usage(self.document, self.retention, _observation(credential=""), MOMENT)
        assert self.document.keys_usage == {}

    def test_only_current_hour_changes(self):
        apply_usage(self.document, self.retention, _observation(), MOMENT)

        record = self.retention.find("2024-01-15")
        touched = [bucket.hour for bucket in record.hourly if bucket.requests]
        assert touched == [10]

    def test_new_day_creates_record(self):
        """An observation on a new date appends a record for it."""
        tomorrow = MOMENT + timedelta(days=1)

        created = apply_usage(self.document, self.retention, _observation(), tomorrow)

        assert created is True
        assert self.retention.dates() == ["2024-01-15", "2024-01-16"]
        assert self.retention.find("2024-01-15").requests.total == 0
        assert self.retention.find("2024-01-16").requests.total == 1

    def test_existing_day_not_recreated(self):
        created = apply_usage(self.document, self.retention, _observation(), MOMENT)
        assert created is False

    def test_credential_buckets_per_date(self):
        apply_usage(self.document, self.retention, _observation(), MOMENT)
        apply_usage(self.document, self.retention, _observation(), MOMENT + timedelta(days=1))

        per_date = self.document.keys_usage["sk-ABC******"]
        assert set(per_date) == {"2024-01-15", "2024-01-16"}
