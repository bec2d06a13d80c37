from contextlib import asynccontextmanager
from datetime import timedelta
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from sportshop.config import get_settings
from sportshop.routers import admin_dashboard, auth, cart, orders, payments, products, reviews, tracking
from sportshop.services.payment_gateway import MomoGateway
from sportshop.services.tracking import BehaviorTracker, InMemorySessionStore
from sportshop.utils.errors import AppError

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

logger = logging.getLogger(__name__)


def create_tables():
    from sportshop.models.user import Base, engine  # Base/engine single source
    import sportshop.models.product  # noqa: F401 register Product model
    import sportshop.models.cart  # noqa: F401 register Cart/CartItem models
    import sportshop.models.order  # noqa: F401 register Order/OrderItem/OrderHistory models
    import sportshop.models.review  # noqa: F401 register Review model
    import sportshop.models.user_behavior  # noqa: F401 register UserBehavior model
    Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    create_tables()

    app.state.payment_gateway = MomoGateway()
    app.state.behavior_tracker = BehaviorTracker(
        InMemorySessionStore(ttl=timedelta(seconds=settings.TRACKING_SESSION_TTL_SECONDS)),
        idle=timedelta(seconds=settings.TRACKING_SESSION_IDLE_SECONDS),
    )
    logger.info("Sportshop API started")

    yield

    app.state.payment_gateway.close()
    logger.info("Sportshop API stopped")


app = FastAPI(title="Sportshop API", version="1.0.0", lifespan=lifespan)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    content = {"status": "error", "code": exc.code, "message": exc.message}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({
            "status": "error",
            "code": "ValidationError",
            "message": "Invalid request",
            "details": exc.errors(),
        }),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"status": "error", "code": "Internal", "message": "Internal server error"},
    )


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(products.admin_router, prefix="/api/admin/products", tags=["admin-products"])
app.include_router(cart.router, prefix="/api/cart", tags=["cart"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(orders.admin_router, prefix="/api/admin/orders", tags=["admin-orders"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])
app.include_router(reviews.router, prefix="/api/reviews", tags=["reviews"])
app.include_router(tracking.router, prefix="/api/tracking", tags=["tracking"])
app.include_router(admin_dashboard.router, prefix="/api/admin/analytics", tags=["admin-analytics"])


# --- Entry point for local runs ---
if __name__ == "__main__":
    import uvicorn, os
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("sportshop.main:app", host="0.0.0.0", port=port, reload=False)
