"""Ledger notification connectors."""

from .subscription import ProgramAccountFeed

__all__ = ["ProgramAccountFeed"]
