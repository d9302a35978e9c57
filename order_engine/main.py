"""
FastAPI Application Entry Point

Le Trois Quarts - Order Engine
Supports both Mock services (development) and Real APIs (production).

Endpoints:
    - POST /api/orders: Checkout the current cart
    - GET /api/orders/{order_id}: Order by id
    - GET /api/orders/number/{number}: Order by tracking number
    - PATCH /api/orders/{order_id}/status: Status change
    - POST /api/coupons/validate: Quote a coupon code
    - GET /api/coupons: Active coupons
    - POST /api/address/validate: Delivery range check
    - GET /api/settings: VAT rate, delivery fee, radius
    - GET|PUT /api/cart: Cart simulation (development only)
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import logging
from datetime import datetime
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Request, Header, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from order_engine.core.config import get_settings, get_restaurant_settings, setup_logging
from order_engine.core.exceptions import OrderEngineError, OrderNotFoundError
from order_engine.database import get_db, init_db, engine
from order_engine.models import Order
from order_engine.schemas import (
    AddressValidateRequest,
    CartLineIn,
    CouponQuoteResponse,
    CouponValidateRequest,
    ErrorResponse,
    HealthResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from order_engine.services.cart import BaseCartProvider, CartLine, close_redis_client, get_cart_provider
from order_engine.services.coupons import CouponService
from order_engine.services.geo import BaseAddressValidator, get_address_validator
from order_engine.services.idempotency import MAX_KEY_LENGTH
from order_engine.services.notifications import get_notification_service
from order_engine.services.order_factory import OrderFactory
from order_engine.services.repositories import CouponRepository
from order_engine.tasks import notify_new_order

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    # Initialize database
    await init_db()
    logger.info("✅ Database initialized")

    # Log service configuration
    validator = get_address_validator()
    notifications = get_notification_service()
    logger.info(f"✅ Address Validator: {validator.provider_name}")
    logger.info(f"✅ Notification Service: {notifications.provider_name}")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    await close_redis_client()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Order creation and pricing engine: turns a cart into a stored order "
        "with VAT breakdown, coupon discount, delivery fee and tracking number."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_cart(
    x_cart_session: Optional[str] = Header(None, alias="X-Cart-Session", max_length=128),
) -> Optional[BaseCartProvider]:
    """Cart of the shopper identified by X-Cart-Session, if any."""
    if not x_cart_session:
        return None
    return get_cart_provider(x_cart_session)


def get_validator() -> BaseAddressValidator:
    return get_address_validator()


async def get_order_factory(
    db: AsyncSession = Depends(get_db),
    cart: Optional[BaseCartProvider] = Depends(get_cart),
    validator: BaseAddressValidator = Depends(get_validator),
) -> OrderFactory:
    return OrderFactory(db, cart, validator)


def enqueue_order_notification(order_data: dict[str, Any]) -> None:
    """Hand the new order to the worker. The order is already committed."""
    try:
        notify_new_order.delay(order_data)
    except Exception as e:
        logger.error(f"Could not queue notification for order {order_data.get('no')}: {e}")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    validator: BaseAddressValidator = Depends(get_validator),
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    # Check cart store (Redis outside development)
    cart_status = "healthy"
    store = get_cart_provider("health-check")
    if hasattr(store, "health_check") and not await store.health_check():
        cart_status = "unhealthy"

    geo_status = "healthy" if await validator.health_check() else "unhealthy"

    notifications = get_notification_service()
    notification_status = "healthy" if await notifications.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, cart_status, geo_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        cart_store=cart_status,
        address_validator=geo_status,
        notification_service=notification_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Create Order From Cart",
)
async def create_order(
    order_data: OrderCreate,
    response: Response,
    factory: OrderFactory = Depends(get_order_factory),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=MAX_KEY_LENGTH),
) -> OrderCreateResponse:
    """
    Create an order from the cart named by X-Cart-Session.

    Sending the same Idempotency-Key again returns the first order
    (HTTP 200, ``replayed`` true) without creating another one.
    """
    logger.info(f"Creating order for: {order_data.client_first_name} {order_data.client_last_name}")
    order = await factory.create_order(order_data, idempotency_key=idempotency_key)
    payload = OrderResponse.model_validate(order)

    if factory.replayed:
        response.status_code = status.HTTP_200_OK
        return OrderCreateResponse(
            message=f"Commande {order.no} déjà enregistrée",
            replayed=True,
            order=payload,
        )

    enqueue_order_notification(payload.model_dump(mode="json"))

    return OrderCreateResponse(
        message=f"Commande {order.no} enregistrée",
        order=payload,
    )


@app.get(
    "/api/orders/number/{number}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order_by_number(
    number: str,
    factory: OrderFactory = Depends(get_order_factory),
) -> OrderResponse:
    """Get an order by its tracking number (ORD-YYYYMMDD-XXXX)."""
    order = await factory.get_order_by_number(number)
    if order is None:
        raise OrderNotFoundError(message=f"Commande introuvable: {number}")
    return OrderResponse.model_validate(order)


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    factory: OrderFactory = Depends(get_order_factory),
) -> OrderResponse:
    """Get a specific order by ID."""
    order: Optional[Order] = await factory.get_order(order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    return OrderResponse.model_validate(order)


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def update_order_status(
    order_id: int,
    update: OrderStatusUpdate,
    factory: OrderFactory = Depends(get_order_factory),
) -> OrderResponse:
    """Move an order along pending -> confirmed -> preparing -> delivered (or cancelled)."""
    order = await factory.update_order_status(order_id, update.status)
    return OrderResponse.model_validate(order)


# =============================================================================
# COUPON ENDPOINTS
# =============================================================================

@app.post(
    "/api/coupons/validate",
    response_model=CouponQuoteResponse,
    responses={400: {"model": ErrorResponse}},
    tags=["Coupons"],
)
async def validate_coupon(
    request: CouponValidateRequest,
    db: AsyncSession = Depends(get_db),
) -> CouponQuoteResponse:
    """Check a code against an order amount and quote the discount."""
    quote = await CouponService(CouponRepository(db)).validate_code(request.code, request.order_amount)
    return CouponQuoteResponse(
        coupon_id=quote.coupon_id,
        code=quote.code,
        discount_type=quote.discount_type,
        discount_value=quote.discount_value,
        discount_amount=quote.discount_amount,
        new_total=quote.new_total,
    )


@app.get("/api/coupons", tags=["Coupons"])
async def list_coupons(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Active coupons with their current eligibility."""
    coupons = await CouponService(CouponRepository(db)).list_active()
    return {"success": True, "coupons": coupons}


# =============================================================================
# ADDRESS & SETTINGS ENDPOINTS
# =============================================================================

@app.post("/api/address/validate", tags=["Delivery"])
async def validate_address(
    request: AddressValidateRequest,
    validator: BaseAddressValidator = Depends(get_validator),
) -> dict[str, Any]:
    """Check whether an address (or a zip code alone) is within delivery range."""
    if request.address:
        result = await validator.validate_address_for_delivery(request.address, request.zip_code)
    else:
        result = await validator.validate_zip_code_for_delivery(request.zip_code)
    return result.to_dict()


@app.get("/api/settings", tags=["Delivery"])
async def restaurant_settings() -> dict[str, Any]:
    """Public business settings used by the checkout page."""
    return {
        "restaurant_name": settings.restaurant_name,
        **get_restaurant_settings().to_dict(),
    }


# =============================================================================
# CART SIMULATION (DEVELOPMENT)
# =============================================================================

def _require_development() -> None:
    if not settings.is_development:
        raise HTTPException(
            status_code=403,
            detail="Cart simulation only available in development mode"
        )


@app.get("/api/cart", tags=["Simulation"], summary="Read Cart (Development)")
async def read_cart(cart: Optional[BaseCartProvider] = Depends(get_cart)) -> dict[str, Any]:
    _require_development()
    if cart is None:
        raise HTTPException(status_code=400, detail="X-Cart-Session header required")
    snapshot = await cart.get_cart()
    return snapshot.to_dict()


@app.put("/api/cart", tags=["Simulation"], summary="Fill Cart (Development)")
async def fill_cart(
    lines: list[CartLineIn],
    cart: Optional[BaseCartProvider] = Depends(get_cart),
) -> dict[str, Any]:
    """
    Overwrite the shopper's cart, so checkout can be exercised locally
    without the menu/cart front end.
    """
    _require_development()
    if cart is None:
        raise HTTPException(status_code=400, detail="X-Cart-Session header required")
    snapshot = await cart.replace(
        [CartLine(id=line.id, name=line.name, price=line.price, quantity=line.quantity) for line in lines]
    )
    logger.info(f"Simulated cart: {snapshot.item_count} item(s), {snapshot.total}€")
    return snapshot.to_dict()


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderEngineError)
async def order_engine_exception_handler(request: Request, exc: OrderEngineError) -> JSONResponse:
    """Business failures carry their own status and code."""
    if exc.http_status >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests are reported with the error body, as 400."""
    detail = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "validation_error", "detail": detail},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "order_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
