from .rate_limiter import limiter, client_key

__all__ = [
    "limiter",
    "client_key"
]
