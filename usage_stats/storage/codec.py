"""
JSON codec for the statistics document.

Converts between UsageDocument and its on-disk JSON representation,
validating the shape strictly on the way in.
"""

import json
from dataclasses import asdict
from typing import Any, Dict, List

from .errors import DocumentDecodeError
from .models import (
    HOURS_PER_DAY,
    DailyStats,
    HourlyUsage,
    RequestCounts,
    TokenCounts,
    UsageCounter,
    UsageDocument,
)


def encode_document(document: UsageDocument) -> Dict[str, Any]:
    """Convert a document into plain JSON-compatible data.

    The returned structure shares nothing with the document, so it can be
    serialized after the caller releases any lock on the document.
    """
    return asdict(document)


def dumps(data: Dict[str, Any]) -> str:
    """Serialize encoded document data as pretty-printed JSON.

    Output is ASCII; non-ASCII text, including lone surrogates, is escaped.
    """
    return json.dumps(data, indent=2)


def loads(text: str) -> UsageDocument:
    """Parse JSON text into a document.

    Args:
        text: Raw file content

    Returns:
        Decoded UsageDocument

    Raises:
        DocumentDecodeError: If the text is not JSON or not the document shape
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentDecodeError(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise DocumentDecodeError("Invalid JSON: nesting too deep") from e
    return decode_document(raw)


def decode_document(raw: Any) -> UsageDocument:
    """Validate and convert decoded JSON data into a document.

    Raises:
        DocumentDecodeError: If any required key is missing or mistyped
    """
    root = _require_dict(raw, "document")

    daily_raw = _require_list(_require_key(root, "daily_stats", "document"), "daily_stats")
    daily_stats = [
        _decode_daily(item, f"daily_stats[{index}]")
        for index, item in enumerate(daily_raw)
    ]

    keys_raw = _require_dict(_require_key(root, "keys_usage", "document"), "keys_usage")
    keys_usage: Dict[str, Dict[str, UsageCounter]] = {}
    for masked_key, per_date in keys_raw.items():
        path = f"keys_usage.{masked_key}"
        keys_usage[masked_key] = {
            date: _decode_counter(counter, f"{path}.{date}")
            for date, counter in _require_dict(per_date, path).items()
        }

    return UsageDocument(
        version=_require_str(root, "version", "document"),
        description=_require_str(root, "description", "document"),
        last_updated=_require_str(root, "last_updated", "document"),
        daily_stats=daily_stats,
        keys_usage=keys_usage,
    )


def _decode_daily(raw: Any, path: str) -> DailyStats:
    data = _require_dict(raw, path)

    requests = _require_dict(_require_key(data, "requests", path), f"{path}.requests")
    tokens = _require_dict(_require_key(data, "tokens", path), f"{path}.tokens")
    models = _require_dict(_require_key(data, "models", path), f"{path}.models")
    hourly = _require_list(_require_key(data, "hourly", path), f"{path}.hourly")

    if len(hourly) != HOURS_PER_DAY:
        raise DocumentDecodeError(
            f"{path}.hourly must have {HOURS_PER_DAY} entries, found {len(hourly)}"
        )

    buckets: List[HourlyUsage] = []
    for index, item in enumerate(hourly):
        bucket_path = f"{path}.hourly[{index}]"
        bucket = _require_dict(item, bucket_path)
        hour = _require_count(bucket, "hour", bucket_path)
        if hour != index:
            raise DocumentDecodeError(f"{bucket_path}.hour must be {index}, found {hour}")
        buckets.append(HourlyUsage(
            hour=hour,
            requests=_require_count(bucket, "requests", bucket_path),
            tokens=_require_count(bucket, "tokens", bucket_path),
        ))

    return DailyStats(
        date=_require_str(data, "date", path),
        requests=RequestCounts(
            total=_require_count(requests, "total", f"{path}.requests"),
            success=_require_count(requests, "success", f"{path}.requests"),
            failed=_require_count(requests, "failed", f"{path}.requests"),
        ),
        tokens=TokenCounts(
            total=_require_count(tokens, "total", f"{path}.tokens"),
            prompt=_require_count(tokens, "prompt", f"{path}.tokens"),
            completion=_require_count(tokens, "completion", f"{path}.tokens"),
        ),
        models={
            name: _decode_counter(counter, f"{path}.models.{name}")
            for name, counter in models.items()
        },
        hourly=buckets,
    )


def _decode_counter(raw: Any, path: str) -> UsageCounter:
    data = _require_dict(raw, path)
    return UsageCounter(
        requests=_require_count(data, "requests", path),
        tokens=_require_count(data, "tokens", path),
    )


def _require_key(data: Dict[str, Any], key: str, path: str) -> Any:
    if key not in data:
        raise DocumentDecodeError(f"Missing required '{key}' in {path}")
    return data[key]


def _require_dict(value: Any, path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DocumentDecodeError(f"'{path}' must be an object")
    return value


def _require_list(value: Any, path: str) -> List[Any]:
    if not isinstance(value, list):
        raise DocumentDecodeError(f"'{path}' must be an array")
    return value


def _require_str(data: Dict[str, Any], key: str, path: str) -> str:
    value = _require_key(data, key, path)
    if not isinstance(value, str):
        raise DocumentDecodeError(f"'{key}' in {path} must be a string")
    return value


def _require_count(data: Dict[str, Any], key: str, path: str) -> int:
    value = _require_key(data, key, path)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DocumentDecodeError(f"'{key}' in {path} must be a non-negative integer")
    return value
