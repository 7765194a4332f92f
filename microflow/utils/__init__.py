"""Utility modules for the microflow package."""

from .backoff import ExponentialBackoff

__all__ = [
    "ExponentialBackoff",
]
