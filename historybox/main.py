"""
Main FastAPI application for HistoryBox API.
Serves health, regions/unlock, memories, coins/payments, user, geocode and metrics.
"""
import logging
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from historybox.api.routes import coins, geocode, health, memories, regions, users
from historybox.core.config import settings
from historybox.core.errors import HistoryBoxError
from historybox.core.logging import configure_logging
from historybox.services.geocoding.client import GeocoderClient
from historybox.services.payments.gateway import PaymentGatewayClient
from historybox.utils.metrics import router as metrics_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    app.state.redis = redis.Redis.from_url(settings.redis_url, decode_responses=True)
    app.state.payment_gateway = PaymentGatewayClient()
    app.state.geocoder = GeocoderClient()
    logger.info("app_started")
    try:
        yield
    finally:
        app.state.payment_gateway.close()
        app.state.geocoder.close()
        app.state.redis.close()


app = FastAPI(
    title="HistoryBox API",
    description="Map of photo memories with a coin-gated region unlock",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = settings.cors_origins_list
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HistoryBoxError)
async def historybox_error_handler(request: Request, exc: HistoryBoxError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            extra={"path": request.url.path, "status_code": exc.status_code, "error": exc.message},
        )
    content = {"error": exc.message}
    if exc.detail:
        content["detail"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content)


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(regions.router)
app.include_router(memories.router)
app.include_router(coins.router)
app.include_router(users.router)
app.include_router(geocode.router)
app.include_router(metrics_router)
