"""BockDocs: multi-user document editing backend."""

__version__ = "1.0.0"
