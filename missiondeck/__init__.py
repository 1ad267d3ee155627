"""Mission deck: file-backed dashboard core with live invalidation."""

__version__ = "0.1.0"
