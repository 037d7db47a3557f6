"""Utility modules for the LearnHub API."""

from src.utils.percent import percent, round_half_up


__all__ = ["percent", "round_half_up"]
