"""Client wrappers for external collaborators."""

from .ledger import LedgerClient
from .search import SearchClient

__all__ = ["LedgerClient", "SearchClient"]
