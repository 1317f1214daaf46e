"""FileHub — multi-tenant web file manager."""

__version__ = "0.4.0"
