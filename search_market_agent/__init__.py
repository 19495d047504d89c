"""Search prediction market resolution agent."""

__version__ = "0.1.0"
