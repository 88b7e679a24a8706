"""Atlassian Data Center infrastructure installer."""

__version__ = "1.0.0"
