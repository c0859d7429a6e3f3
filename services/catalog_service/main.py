from fastapi import FastAPI

from shared.errors import register_exception_handlers
from shared.observability import setup_observability
from .models import Product  # noqa: F401
from .router import router, public_router

catalog_app = FastAPI(
    title="Catalog Service",
    version="1.0.0"
)

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(catalog_app, "catalog_service")
register_exception_handlers(catalog_app)

catalog_app.include_router(public_router)
catalog_app.include_router(router)
