# taskboard/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from taskboard.api.endpoints import status as status_endpoints
from taskboard.api.v1 import api_v1_router
from taskboard.core.config import settings
from taskboard.core.database import mongo_manager
from taskboard.core.errors import TaskboardError
from taskboard.core.logging_config import add_trace_id_middleware, setup_logging
from taskboard.models.api_common import ErrorDetail, ValidationErrorResponse
from taskboard.modules.tasks.repository import MongoTaskRepository


async def taskboard_exception_handler(request: Request, exc: TaskboardError):
    logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append(
            ErrorDetail(
                field=".".join(location) or None,
                message=str(error.get("msg", "Invalid value")).removeprefix("Value error, "),
            )
        )
    logger.warning(f"Validation Error on {request.method} {request.url.path}: {exc.errors()}")
    payload = ValidationErrorResponse(errors=errors)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=payload.model_dump())


async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled Exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION} (store: {settings.STORE_BACKEND})...")
    if settings.STORE_BACKEND == "mongo":
        await mongo_manager.connect()
        await MongoTaskRepository(mongo_manager.get_db()).create_indexes()
    yield
    logger.info("Shutting down...")
    await mongo_manager.disconnect()


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/docs",
        lifespan=lifespan,
        exception_handlers={
            TaskboardError: taskboard_exception_handler,
            RequestValidationError: validation_exception_handler,
            Exception: generic_exception_handler,
        },
    )

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_trace_id_middleware)

    app.include_router(status_endpoints.router)
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)
    return app


app = create_app()
