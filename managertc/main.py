from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from managertc.api.routers.departments import router as departments_router
from managertc.api.routers.designations import router as designations_router
from managertc.api.routers.employees import router as employees_router
from managertc.api.routers.holidays import router as holidays_router
from managertc.api.routers.holidays import types_router as holiday_types_router
from managertc.api.routers.jobs import router as jobs_router
from managertc.api.routers.performance_reviews import router as performance_reviews_router
from managertc.api.routers.policies import router as policies_router
from managertc.core.cache import RedisClient
from managertc.core.config import settings
from managertc.core.database import create_db_and_tables
from managertc.core.exceptions import ServiceError
from managertc.core.kafka import KafkaProducer
from managertc.core.logging import get_logger
from managertc.sockets.server import sio

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION} ({settings.ENVIRONMENT})")
    create_db_and_tables()
    try:
        yield
    finally:
        await KafkaProducer.close()
        RedisClient.close()
        logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"Invalid {location}: {first.get('msg')}" if location else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"done": False, "error": message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"done": False, "error": "Internal server error"},
    )


for router in (
    departments_router,
    designations_router,
    policies_router,
    holiday_types_router,
    holidays_router,
    employees_router,
    jobs_router,
    performance_reviews_router,
):
    app.include_router(router, prefix="/api")


@app.get("/health", tags=["health"])
async def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cacheEnabled": settings.CACHE_ENABLED,
        "kafkaEnabled": settings.KAFKA_ENABLED,
    }


# Socket.IO shares the ASGI entrypoint: uvicorn managertc.main:asgi_app
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)
