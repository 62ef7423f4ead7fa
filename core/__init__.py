"""
Application core: shared component context and the document service facade.
"""
from core.context import AppContext
from core.service import DocumentService

__all__ = ["AppContext", "DocumentService"]
