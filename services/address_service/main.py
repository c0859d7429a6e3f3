from fastapi import FastAPI

from shared.errors import register_exception_handlers
from shared.observability import setup_observability
from .router import router, public_router

address_app = FastAPI(title="Address Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(address_app, "address_service")
register_exception_handlers(address_app)

address_app.include_router(public_router)
address_app.include_router(router)
