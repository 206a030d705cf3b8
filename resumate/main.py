import logging

import sentry_sdk
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from resumate.api.v1.analytics import router as analytics_router
from resumate.api.v1.health import router as health_router
from resumate.api.v1.resumes import router as resumes_router
from resumate.core.config import settings
from resumate.core.cors import cors_allow_origin_regex, cors_allowed_origins
from resumate.core.lifespan import lifespan
from resumate.core.rate_limit import limiter

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="Resumate API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_origin_regex=cors_allow_origin_regex(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(resumes_router, prefix="/v1", tags=["Resumes"])
app.include_router(analytics_router, prefix="/v1", tags=["Analytics"])
app.mount(
    settings.object_store_public_base_url,
    StaticFiles(directory=settings.object_store_dir, check_dir=False),
    name="files",
)
