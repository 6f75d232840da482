"""Turn and slot annotation for spoken dialogue recordings."""

__version__ = "0.1.0"
