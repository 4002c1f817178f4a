"""Object-storage path helpers: "/"-rooted paths, recursive listing and deletion."""

__version__ = "0.1.0"
