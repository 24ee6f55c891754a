"""
Quiz image service: AI image generation, image storage and question drafting.
"""
import logging
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from quizgen.api.routes import health, images, questions
from quizgen.core.config import settings
from quizgen.core.logging import bind_request_id, configure_logging
from quizgen.utils.metrics import router as metrics_router

configure_logging()
logger = logging.getLogger("quizgen.http")

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

app = FastAPI(
    title="Quiz Image Service",
    description="Batched AI image generation and storage for quiz questions and answers",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()] or DEFAULT_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started = perf_counter()
    request_id = request.headers.get("x-request-id") or str(uuid4())
    bind_request_id(request_id)
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
    finally:
        logger.info(
            "http_request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "latency_ms": round((perf_counter() - started) * 1000, 1),
            },
        )
        bind_request_id(None)
    response.headers["x-request-id"] = request_id
    return response


app.include_router(health.router, tags=["health"])
app.include_router(images.router)
app.include_router(questions.router)
app.include_router(metrics_router)
