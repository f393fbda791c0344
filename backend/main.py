import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from backend.core.config import settings
from backend.core.db import init_db
from backend.core.errors import register_exception_handlers
from backend.core.logging_config import configure_logging
from backend.routers import auth, chats, matches, pets, socket
from backend.routers.socket import build_realtime_hub

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings.log_level)
    init_db()
    app.state.realtime = build_realtime_hub()
    logger.info("%s started (env=%s)", settings.app_name, settings.env)
    try:
        yield
    finally:
        await app.state.realtime.close()
        logger.info("%s stopped", settings.app_name)


app = FastAPI(title=f"{settings.app_name} API", lifespan=lifespan)

# Development is permissive; set CORS_ALLOW_ORIGINS in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    return RedirectResponse(url="/docs")  # Redirect the homepage to the Swagger UI


@app.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


# Register routers
app.include_router(auth.router, prefix=settings.api_v1_str)
app.include_router(pets.router, prefix=settings.api_v1_str)
app.include_router(matches.router, prefix=settings.api_v1_str)
app.include_router(chats.router, prefix=settings.api_v1_str)
app.include_router(socket.router)
