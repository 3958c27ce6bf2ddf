from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from cartshare.api.error_handlers import register_exception_handlers
from cartshare.api.routers import admin_shared_carts, auth, shared_carts
from cartshare.core.config import settings
from cartshare.core.logging import setup_logging
from cartshare.core.metrics import export_metrics
from cartshare.initial_data import create_initial_admin
from cartshare.middleware import (
    ObservabilityMiddleware,
    PayloadLimitMiddleware,
    SecurityHeadersMiddleware,
)

# --- Models registration (needed for Alembic autogenerate) ---
import cartshare.models.shared_cart  # noqa: F401
import cartshare.models.user  # noqa: F401

setup_logging()

TAGS_METADATA = [
    {"name": "shared-carts", "description": "Share a cart snapshot and open it by short code."},
    {"name": "auth", "description": "Staff login and bearer tokens."},
    {"name": "admin-shared-carts", "description": "Staff follow-up of shared carts through to conversion."},
]


@asynccontextmanager
async def lifespan(_: FastAPI):
    await create_initial_admin()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    description=(
        "Shared cart handoff API.\n\n"
        "- **Shared carts**: immutable cart snapshots behind short, typeable codes.\n"
        "- **Admin**: list, inspect and move shared carts through the sales workflow.\n\n"
        "Use the **Authorize** button with a staff account to try the admin endpoints."
    ),
    openapi_tags=TAGS_METADATA,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    swagger_ui_parameters={"persistAuthorization": True, "displayRequestDuration": True},
)

# --- Middlewares (last added runs first) ---
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(PayloadLimitMiddleware)
app.add_middleware(
    ObservabilityMiddleware,
    quiet_not_found={f"{settings.API_V1_STR}/c/{{code}}"},
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# --- Routers ---
app.include_router(shared_carts.router, prefix=settings.API_V1_STR)
app.include_router(auth.router, prefix=settings.API_V1_STR)
app.include_router(admin_shared_carts.router, prefix=settings.API_V1_STR)


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    payload, content_type = export_metrics()
    return Response(content=payload, media_type=content_type)


@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "docs_url": "/docs", "redoc_url": "/redoc"}
