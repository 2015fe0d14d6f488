"""Shared helpers."""

from micromarker.utils.deadline import Deadline

__all__ = ["Deadline"]
