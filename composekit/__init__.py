"""Project model, service API types and reconciliation rules for multi-container applications."""

__version__ = "0.1.0"