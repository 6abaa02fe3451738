import time
import traceback
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.errors import app_error_handler
from app.api.v1.dependency import get_live_queue_service
from app.api.v1.routers import live_queue, live_queue_jobs
from app.app_config import get_app_environ_config
from app.schemas.init import init_beanie_odm
from app.services.app_db import get_live_queue_mongo_client
from app.shared.api import health
from app.shared.api.utils import api_failure, init_logger, validation_exception_handler
from app.shared.storage.mongo import close_mongo_clients
from app.utils.app_errors import AppError, AppErrorCode

cfg = get_app_environ_config()

REQUEST_ID_HEADER = "X-Request-ID"


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    """Access log per request, tagged with a short request id echoed back to the caller."""

    async def dispatch(self, request: Request, call_next):  # type: ignore
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        started = time.perf_counter()

        with logger.contextualize(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception as exc:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.error(
                    f"[{request_id}] {request.method} {request.url.path} failed after "
                    f"{elapsed_ms:.2f}ms: {type(exc).__name__}: {exc}\n{traceback.format_exc()}"
                )
                failure = api_failure(
                    errcode=AppErrorCode.E_INTERNAL_ERROR.value,
                    errmesg=f"Internal server error (request_id: {request_id})",
                )
                response = ORJSONResponse(status_code=500, content=failure.model_dump())
            else:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.info(
                    f"[{request_id}] {request.method} {request.url.path} "
                    f"-> {response.status_code} ({elapsed_ms:.2f}ms)"
                )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger()

    logger.info("Application startup...")

    if cfg.STORE_BACKEND == "mongo":
        await init_beanie_odm(get_live_queue_mongo_client(), cfg.MONGO_DB_NAME)
        logger.info(f"Beanie ODM initialized on database '{cfg.MONGO_DB_NAME}'")

    server.state.live_queue_service = get_live_queue_service()

    yield

    logger.info("Application shutdown...")

    if cfg.STORE_BACKEND == "mongo":
        await close_mongo_clients()


app = FastAPI(
    version="1.0",
    title="MYC Live Queue API",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(HTTPLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,  # type: ignore
    allow_origins=cfg.API_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
app.add_exception_handler(AppError, app_error_handler)  # type: ignore

app.include_router(health.router)
app.include_router(live_queue.router, prefix="/api/v1")
app.include_router(live_queue_jobs.router, prefix="/api/v1")


def build_granian_kwargs():
    kwargs = {
        "interface": "asgi",
        "address": cfg.API_HOST,
        "port": cfg.API_PORT,
        "workers": cfg.API_WORKERS,
        "reload": cfg.DEBUG,
    }

    return kwargs


if __name__ == "__main__":
    granian_kwargs = build_granian_kwargs()
    Granian("app.main:app", **granian_kwargs).serve()
