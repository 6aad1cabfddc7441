"""Beacon — synthetic monitoring for independently deployed web applications."""

__version__ = "0.1.0"
