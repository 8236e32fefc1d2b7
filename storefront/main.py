import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.router import router
from storefront.config import settings
from storefront.models.database import init_db
from storefront.services.registry import ControllerRegistry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db(settings.SQLITE_DB_PATH)
    app.state.http = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    app.state.controllers = ControllerRegistry()
    yield
    # flush pending cart writes
    await app.state.controllers.aclose()
    await app.state.http.aclose()


app = FastAPI(
    title="Storefront Assistant",
    description="Cart sync and AI shopping-assistant chat for the storefront.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
