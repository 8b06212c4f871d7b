"""Clicktrail - short link resolution with click analytics."""

__version__ = "0.1.0"
