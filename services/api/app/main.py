"""Storefront API service entrypoint."""

import logging
import os

from fastapi import FastAPI

from services.api.app.db.init_db import init_db
from services.api.app.routers.addresses import router as addresses_router
from services.api.app.routers.cart import router as cart_router
from services.api.app.routers.checkout import router as checkout_router
from services.api.app.routers.customers import router as customers_router
from services.api.app.routers.favorites import router as favorites_router
from services.api.app.routers.orders import router as orders_router

logging.basicConfig(
    level=os.getenv("STOREFRONT_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Storefront API")

app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(orders_router)
app.include_router(addresses_router)
app.include_router(customers_router)
app.include_router(favorites_router)


@app.on_event("startup")
def _startup() -> None:
    init_db()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
