# storefront/main.py
# Точка входа FastAPI. Создание таблиц и купонов по умолчанию: в lifespan с обработкой ошибок.

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.api import auth, cart, categories, orders, payments, products
from storefront.core.config import settings
from storefront.core.errors import StoreError
from storefront.db.base import Base, import_models
from storefront.db.session import SessionLocal, engine
from storefront.services.coupons import seed_default_coupons

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

import_models()


def try_create_tables(retries: int = 5, delay: int = 2) -> bool:
    """
    Пытаемся создать таблицы с повторными попытками.
    Если БД недоступна, логируем ошибку и пробуем снова.

    Args:
        retries: Количество попыток подключения
        delay: Задержка между попытками в секундах

    Returns:
        True если таблицы созданы/существуют, False если все попытки исчерпаны
    """
    for attempt in range(1, retries + 1):
        try:
            logger.info(f"Creating tables ({attempt}/{retries})...")
            Base.metadata.create_all(bind=engine)
            logger.info("✅ Database tables created (or already exist).")
            return True
        except Exception as e:
            logger.warning(f"❌ Attempt {attempt}/{retries} failed to create tables: {e}")
            if attempt < retries:
                logger.info(f"⏳ Waiting {delay}s before retry...")
                time.sleep(delay)
    logger.error(f"❌ Could not create tables after {retries} retries.")
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Storefront API starting up...")
    if not try_create_tables(retries=5, delay=2):
        if settings.ENVIRONMENT in ("production", "prod"):
            raise RuntimeError("Cannot start application: database tables creation failed")
        logger.error("⚠️ Failed to create database tables. Application may not work correctly.")
    else:
        with SessionLocal() as db:
            seed_default_coupons(db)

    yield

    logger.info("🛑 Storefront API shutting down...")
    engine.dispose()


app = FastAPI(
    title="Kibanda Storefront API",
    description="Каталог, корзина, оформление и оплата заказов",
    version="1.0.0",
    lifespan=lifespan,
)

if settings.ENVIRONMENT == "development":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["https://kibanda.co.ke"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(cart.router, prefix="/api/cart", tags=["cart"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])


@app.get("/", tags=["health"])
async def root():
    return {
        "status": "ok",
        "service": "Kibanda Storefront API",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health", tags=["health"])
async def health():
    return {"status": "healthy", "version": "1.0.0"}


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"success": False, "error": "; ".join(errors)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc) if settings.ENVIRONMENT == "development" else "Server error",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower()
    )
