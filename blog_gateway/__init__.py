"""Resilience layer between the blog backend and the content service API."""

__version__ = "0.1.0"
