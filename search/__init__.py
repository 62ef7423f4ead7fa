"""
Search module: two-phase queries over the chunk index.
"""
from search.service import SearchService, HIT_ATTRIBUTES

__all__ = ["SearchService", "HIT_ATTRIBUTES"]
