"""Batch vector indexing for the product catalog: export, embed, transform, publish."""

__version__ = "0.1.0"
