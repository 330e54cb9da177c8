# checkout/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from checkout.core.config import get_settings
from checkout.core.errors import ErrorCode, ShopError
from checkout.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from checkout.models import user as _user_models  # noqa: F401
from checkout.models import product as _product_models  # noqa: F401
from checkout.models import cart as _cart_models  # noqa: F401
from checkout.models import order as _order_models  # noqa: F401

# Routers
from checkout.routers.products import router as products_router
from checkout.routers.cart import router as cart_router
from checkout.routers.orders import router as orders_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: verify DB connectivity and create tables.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error("Startup: DB connection FAILED: %s", e)
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error rendering ---


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    if exc.status_code >= 409:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.code.value)
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(exc.to_dict()),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(
            {
                "detail": "Invalid request",
                "code": ErrorCode.INVALID_INPUT.value,
                "retryable": False,
                "errors": exc.errors(),
            }
        ),
    )


# Versioned API prefix, e.g. /api/v1
app.include_router(products_router, prefix=settings.API_V1_STR)
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "checkout-core"}
