from fastapi import FastAPI

from shared.errors import register_exception_handlers
from shared.observability import setup_observability
from .router import router, public_router

shipping_app = FastAPI(title="Shipping Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(shipping_app, "shipping_service")
register_exception_handlers(shipping_app)

shipping_app.include_router(public_router)
shipping_app.include_router(router)
