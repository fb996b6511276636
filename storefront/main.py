# storefront/main.py
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
import logging
import os
from contextlib import asynccontextmanager

from storefront.config import settings
from storefront.database import db
from storefront.api.routes import admin as admin_routes
from storefront.api.routes import auth as auth_routes
from storefront.api.routes import cart as cart_routes
from storefront.api.routes import categories as category_routes
from storefront.api.routes import checkout as checkout_routes
from storefront.api.routes import orders as order_routes
from storefront.api.routes import payment as payment_routes
from storefront.api.routes import products as product_routes
from storefront.api.routes import reviews as reviews_routes
from storefront.api.routes import shipping as shipping_routes
from storefront.api.routes import wishlist as wishlist_routes
from storefront.middleware.cors_config import configure_cors
from storefront.middleware.security_headers import add_security_headers


logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup checks before the app starts serving.
    """
    for table in ("users", "products", "categories"):
        path = db._file_path(table)
        if not path.exists():
            logger.warning("%s table not found at %s - run scripts/seed_db.py or create records via the admin API.",
                           table, path)
        else:
            logger.info("Found %s table: %s", table, path)
    if not settings.MERCADOPAGO_ACCESS_TOKEN:
        logger.warning("MERCADOPAGO_ACCESS_TOKEN not set, payments run in mock mode")
    yield
    logger.info("Shutting down %s API", settings.STORE_NAME)


app = FastAPI(title=f"{settings.STORE_NAME} API", version="0.1.0", lifespan=lifespan)
configure_cors(app)
add_security_headers(app)

# Mount a static directory if present (for images / assets)
if os.path.isdir("static"):
    app.mount("/static", StaticFiles(directory="static"), name="static")

# Include API routers
app.include_router(auth_routes.router)
app.include_router(category_routes.router)
app.include_router(product_routes.router)
app.include_router(reviews_routes.router)
app.include_router(cart_routes.router)
app.include_router(checkout_routes.router)
app.include_router(shipping_routes.router)
app.include_router(order_routes.router)
app.include_router(payment_routes.router)
app.include_router(wishlist_routes.router)
app.include_router(admin_routes.router)
app.include_router(admin_routes.page_router)


@app.get("/", tags=["root"])
async def root():
    return {"status": "ok", "service": f"{settings.STORE_NAME} API"}
