"""Async client for the storefront REST backend."""

__version__ = "0.1.0"
