"""Catalog service - taxonomy, products and supplier management."""

__version__ = "0.1.0"
