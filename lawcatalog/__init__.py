"""Catalog of e-Gov law XML files: metadata extraction, revision resolution and index reconciliation."""

__version__ = "0.7.2"
