"""
Prompt Lab API
Prompts, tags, pins and ordered prompt workflows for a single signed-in user.
"""

from dotenv import load_dotenv
load_dotenv()

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from promptlab import __version__
from promptlab.config import settings
from promptlab.db import create_schema, get_engine
from promptlab.errors import PromptLabError
from promptlab.log import configure_logging
from promptlab.routers import dashboard, prompts, tags, workflows

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_schema(get_engine())
    logger.info("Prompt Lab API ready (%s, %s)", settings.app_env, settings.database_url)
    yield


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="Prompt Lab API", version=__version__, openapi_url="/openapi.json", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(prompts.router, prefix=API_PREFIX, tags=["prompts"])
    app.include_router(tags.router, prefix=API_PREFIX, tags=["tags"])
    app.include_router(workflows.router, prefix=API_PREFIX, tags=["workflows"])
    app.include_router(dashboard.router, prefix=API_PREFIX, tags=["dashboard"])

    @app.get(f"{API_PREFIX}/healthz", tags=["health"])
    def healthz():
        return {"status": "ok", "version": __version__}

    @app.middleware("http")
    async def add_request_id_header(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        started = time.perf_counter()
        resp: Response = await call_next(request)
        resp.headers["X-Request-Id"] = request_id
        logger.info(
            "%s %s -> %s (%.1f ms) [%s]",
            request.method, request.url.path, resp.status_code,
            (time.perf_counter() - started) * 1000, request_id,
        )
        return resp

    @app.exception_handler(PromptLabError)
    async def domain_exception_handler(request: Request, exc: PromptLabError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"path": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={"error": {"code": "VALIDATION_ERROR", "message": "Invalid request", "details": details}},
        )

    @app.exception_handler(Exception)
    async def default_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL",
                    "message": "Unhandled error",
                    "details": [{"path": "", "msg": str(exc)}],
                }
            },
        )

    return app


app = create_app()
