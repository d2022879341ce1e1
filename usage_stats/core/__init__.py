"""
Core modules for usage stats.

This package contains the aggregation engine, retention policy,
credential masking and background persistence.
"""
