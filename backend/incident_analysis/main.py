from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from incident_analysis.config import get_settings
from incident_analysis.routers import health, incidents
from incident_analysis.services.db.postgres import close_pool, init_db

settings = get_settings()

# 配置日志
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Incident Analysis Backend started")
    try:
        yield
    finally:
        close_pool()


app = FastAPI(title="Incident Analysis Backend", version="0.1.0", lifespan=lifespan)

# CORS：默认放开，生产可通过 CORS_ALLOW_ORIGINS 按域名收紧
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(incidents.router)
