"""Build package, service and topic structure of an API from a source image."""

__version__ = "0.1.0"
__all__ = ["model", "naming", "prose", "structure"]