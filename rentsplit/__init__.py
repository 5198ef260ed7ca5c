"""Utility tariff rating and rent cost allocation engine."""

__version__ = "0.1.0"
