from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request


def client_key(request: Request) -> str:
    """
    Key function for SlowAPI.
    Uses the X-Customer-Id header when the storefront front-end sends one so
    customers behind the same NAT don't share a bucket. Falls back to the
    client's IP address.
    """
    customer_id = request.headers.get("X-Customer-Id")
    if customer_id and customer_id.isdigit():
        return f"customer:{customer_id}"

    # Fallback to IP address (handles proxies if X-Forwarded-For is set correctly by Uvicorn)
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=client_key)
