"""Laravel API Forge — scaffold Laravel API projects and keep the tool current."""

__version__ = "1.0.0"
