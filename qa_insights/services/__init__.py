"""
Data access services.

- SourceResolver: decides whether the search backend or the snapshot is used
- DataService: the facade every caller goes through
"""

from .data_service import DataService
from .source_resolver import SourceResolver

__all__ = ["DataService", "SourceResolver"]
