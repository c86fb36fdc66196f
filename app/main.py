import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.core.rate_limit import limiter
from app.database.supabase_client import create_supabase_client
from app.modules.auth import routes as auth_routes
from app.modules.users import routes as users_routes
from app.modules.workspaces import routes as workspaces_routes
from app.modules.permissions import routes as permissions_routes
from app.modules.permission_groups import routes as permission_groups_routes
from app.modules.leads import routes as leads_routes
from app.modules.conversations import routes as conversations_routes
from app.modules.tags import routes as tags_routes
from app.modules.contact_fields import routes as contact_fields_routes
from app.modules.agents import routes as agents_routes
from app.modules.integrations import routes as integrations_routes
from app.modules.files import routes as files_routes
from app.modules.vector_stores import routes as vector_stores_routes
from app.modules.dispara_ja import routes as dispara_ja_routes
from app.modules.whatsapp_cloud import routes as whatsapp_cloud_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup")
    if getattr(app.state, "supabase", None) is None:
        app.state.supabase = create_supabase_client()
    yield
    logger.info("Application shutdown")


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Validation error on {request.url.path}: {errors}")
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    detail = f"{field}: {message}" if field else message
    return JSONResponse(status_code=400, content={"detail": detail})


@app.exception_handler(APIError)
async def database_exception_handler(request: Request, exc: APIError):
    # 23505: unique_violation, a concurrent insert won the race
    if exc.code == UNIQUE_VIOLATION:
        logger.warning(f"Unique violation on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=409, content={"detail": "Already exists"})
    logger.error(f"Database error on {request.url.path}: code={exc.code} message={exc.message}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
for module in (
    auth_routes,
    users_routes,
    workspaces_routes,
    permissions_routes,
    permission_groups_routes,
    leads_routes,
    conversations_routes,
    tags_routes,
    contact_fields_routes,
    agents_routes,
    integrations_routes,
    files_routes,
    vector_stores_routes,
    dispara_ja_routes,
    whatsapp_cloud_routes,
):
    app.include_router(module.router, prefix="/api/v1")

app.include_router(whatsapp_cloud_routes.webhook_router)
app.include_router(dispara_ja_routes.webhook_router)


@app.get("/")
async def root():
    return {"message": "Welcome to navibot-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready(request: Request):
    """Readiness check: the database must answer a trivial query."""
    supabase = getattr(request.app.state, "supabase", None)
    if supabase is None:
        return JSONResponse(status_code=503, content={"status": "not ready"})
    try:
        supabase.table("workspaces").select("id").limit(1).execute()
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "not ready"})
    return {"status": "ready"}
