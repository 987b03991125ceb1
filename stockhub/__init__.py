"""Inventory management HTTP service for hubs, SKUs and stock levels, on SQLAlchemy and Redis."""

__version__ = "0.1.0"