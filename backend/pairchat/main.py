import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pairchat.api.v1.api import api_router
from pairchat.core.config import settings
from pairchat.services.chat_hub import ChatHub
from pairchat.services.gateway import ConnectionGateway
from pairchat.services.identity import TokenIdentityResolver

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    docs_url=f"{settings.API_V1_STR}/docs",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.on_event("startup")
async def on_startup() -> None:
    # Built per run: the hub lock and outboxes belong to the serving event loop.
    app.state.chat_hub = ChatHub()
    app.state.connection_gateway = ConnectionGateway(TokenIdentityResolver())
    logger.info("%s ready", settings.PROJECT_NAME)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    hub: ChatHub | None = getattr(app.state, "chat_hub", None)
    if hub is not None:
        logger.info("Shutting down chat hub with %s open connections", len(hub.state.connections))
