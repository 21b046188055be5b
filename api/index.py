"""
Snack Shop Storefront - Cart API

Single FastAPI entry point exposing the cart engine to the storefront.
"""
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Local development reads .env; deployed environments set real variables
load_dotenv()

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from snackshop.routers import cart_router  # noqa: E402
from snackshop.logging import get_logger  # noqa: E402

logger = get_logger(__name__)


# ==================== FASTAPI APP ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("Snack Shop Cart API starting")
    yield
    logger.info("Snack Shop Cart API shutting down")


app = FastAPI(
    title="Snack Shop Cart",
    description="Shopping cart pricing and persistence API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cart_router, prefix="/api")


# ==================== HEALTH CHECK ====================

@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "snackshop-cart"}
