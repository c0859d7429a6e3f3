from fastapi import FastAPI

from shared.errors import register_exception_handlers
from shared.observability import setup_observability
from .models import Address, Customer  # noqa: F401
from .router import router, public_router

customer_app = FastAPI(
    title="Customer Service",
    version="1.0.0",
    description="Customer registration and address book.",
)

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(customer_app, "customer_service")
register_exception_handlers(customer_app)

customer_app.include_router(public_router)
customer_app.include_router(router)
