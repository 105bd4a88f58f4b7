"""Clutch: team dashboard backend with prediction topics and a points economy."""

__version__ = "0.1.0"
__author__ = "Clutch Team"

__all__ = ["__version__", "__author__"]
