"""
Real HTTP integration clients.

These clients communicate with the search backend over HTTP.

Important:
- Must return data shaped according to qa_insights/integrations/contracts/*
- Must raise the tagged errors from contracts/errors.py, never swallow them
"""

from .search_backend import SearchBackendClient

__all__ = ["SearchBackendClient"]
