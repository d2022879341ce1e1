"""
Usage aggregation.

Folds a single usage observation into the daily, hourly, per-model and
per-credential counters of a statistics document.
"""

from dataclasses import dataclass
from datetime import datetime

from .clock import date_key
from .masking import mask_credential
from .retention import RetentionStore
from usage_stats.storage.models import UsageCounter, UsageDocument


@dataclass(frozen=True)
class UsageObservation:
    """One batch of requests reported by the serving layer.

    Empty ``credential`` or ``model`` values are accepted; the matching
    per-credential or per-model bucket is simply not updated.
    """
    credential: str
    model: str
    request_count: int
    prompt_tokens: int
    completion_tokens: int
    success: bool

    def __post_init__(self):
        """Validate counts are non-negative."""
        if self.request_count < 0:
            raise ValueError("request_count cannot be negative")
        if self.prompt_tokens < 0:
            raise ValueError("prompt_tokens cannot be negative")
        if self.completion_tokens < 0:
            raise ValueError("completion_tokens cannot be negative")

    @property
    def total_tokens(self) -> int:
        """Total tokens used (prompt + completion)."""
        return self.prompt_tokens + self.completion_tokens


def apply_usage(
    document: UsageDocument,
    retention: RetentionStore,
    observation: UsageObservation,
    moment: datetime
) -> bool:
    """Add an observation to the record for ``moment``'s date and hour.

    The caller must hold exclusive access to ``document``.

    Args:
        document: Document to mutate
        retention: Retention view over ``document.daily_stats``
        observation: Usage to record
        moment: Wall-clock time the observation is attributed to

    Returns:
        True if a new daily record had to be created
    """
    today = date_key(moment)
    record, created = retention.ensure(today)

    count = observation.request_count
    tokens = observation.total_tokens

    record.requests.total += count
    if observation.success:
        record.requests.success += count
    else:
        record.requests.failed += count

    record.tokens.total += tokens
    record.tokens.prompt += observation.prompt_tokens
    record.tokens.completion += observation.completion_tokens

    if observation.model:
        model_usage = record.models.setdefault(observation.model, UsageCounter())
        model_usage.requests += count
        model_usage.tokens += tokens

    hourly = record.hourly[moment.hour]
    hourly.requests += count
    hourly.tokens += tokens

    if observation.credential:
        per_date = document.keys_usage.setdefault(mask_credential(observation.credential), {})
        key_usage = per_date.setdefault(today, UsageCounter())
        key_usage.requests += count
        key_usage.tokens += tokens

    return created
