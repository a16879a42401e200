import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse

from app.device import get_registry, set_device_cookie
from app.routes import auth, onboarding, profile, provider, public, seeker
from core.storage import init_storage

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("hustlefy.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    registry = get_registry()
    init_storage(registry.settings.storage_path)
    log.info("Hustlefy front end started (backend: %s)", registry.settings.api_base_url)
    yield
    # Pending auto-logout timers belong to this process only.
    get_registry().close_all()


app = FastAPI(lifespan=lifespan)


app.include_router(public.router)
app.include_router(auth.router)
app.include_router(onboarding.router)
app.include_router(profile.router)
app.include_router(provider.router)
app.include_router(seeker.router)


# Registered last so every real route wins.
@app.get("/{path:path}", include_in_schema=False)
def catch_all(path: str):
    return RedirectResponse(url="/", status_code=303)


@app.middleware("http")
async def add_device_cookie(request: Request, call_next):
    response = await call_next(request)
    device = getattr(request.state, "device", None)
    if device is not None and device.is_new:
        set_device_cookie(response, device.device_id)
    return response


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'self'; img-src 'self' data: https://*.googleusercontent.com; "
        "style-src 'self' 'unsafe-inline' https://accounts.google.com; "
        "script-src 'self' 'unsafe-inline' https://accounts.google.com/gsi/client; "
        "frame-src https://accounts.google.com; connect-src 'self' https://accounts.google.com; "
        "font-src 'self' data:;",
    )
    return response
