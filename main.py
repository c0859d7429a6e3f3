from fastapi import FastAPI
from shared.config.database import engine, Base

# IMPORTANT: import models so they register with Base
from services.catalog_service import models as catalog_models  # noqa: F401
from services.customer_service import models as customer_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401

from services.catalog_service.main import catalog_app
from services.customer_service.main import customer_app
from services.address_service.main import address_app
from services.shipping_service.main import shipping_app
from services.order_service.main import order_app

app = FastAPI(title="Storefront")


@app.on_event("startup")
async def startup_event():
    # Mounted sub-apps don't get their own startup events
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "storefront", "status": "running"}


app.mount("/products", catalog_app)
app.mount("/customers", customer_app)
app.mount("/addresses", address_app)
app.mount("/shipping", shipping_app)
app.mount("/orders", order_app)
