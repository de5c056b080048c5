import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from codescore.config import get_settings
from codescore.database import SessionLocal
from codescore.errors import SessionRequiredError
from codescore.routers import admin, approvals, auth, request_access, reviews, shared
from codescore.services.provisioner import ensure_admin_account
from codescore.services.retention import retention_sweeper

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        ensure_admin_account(db, settings.admin_email, settings.admin_password)
    finally:
        db.close()

    task = None
    if settings.sweep_enabled:
        task = asyncio.create_task(retention_sweeper(settings.sweep_interval_seconds))
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        from codescore.core.redis import close_redis
        await close_redis()


app = FastAPI(title="CodeScore API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SessionRequiredError)
async def session_required_handler(request: Request, exc: SessionRequiredError):
    """No session on a content-producing endpoint: send the user to the request-access form."""
    redirect_to = f"{settings.frontend_url.rstrip('/')}/request-access"
    if "text/html" in request.headers.get("accept", ""):
        return RedirectResponse(url=redirect_to, status_code=status.HTTP_303_SEE_OTHER)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": exc.message, "redirect_to": redirect_to},
        headers={"WWW-Authenticate": "Bearer"},
    )


app.include_router(auth.router)
app.include_router(request_access.router)
app.include_router(approvals.router)
app.include_router(reviews.router)
app.include_router(shared.router)
app.include_router(admin.router)


@app.get("/")
def root():
    return {"message": "CodeScore API", "docs": "/docs"}


@app.get("/health")
async def health():
    """Liveness. Redis is optional; its absence is reported, not an error."""
    from codescore.core.redis import get_redis_client
    client = await get_redis_client()
    if client is None:
        return {"status": "ok", "redis": "unavailable"}
    try:
        await client.ping()
        return {"status": "ok", "redis": "ok"}
    except Exception as e:
        logger.warning("Redis health ping failed: %s", e)
        return {"status": "ok", "redis": "error"}
