from .server import SearchServerApp

__all__ = [
    "SearchServerApp",
]
