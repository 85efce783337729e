"""Data models for server-reported values."""

from .stats import StatEntry, stats_to_dict
