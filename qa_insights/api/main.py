"""
FastAPI application - read-only analytics API over DataService
"""

from dotenv import load_dotenv

load_dotenv()

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qa_insights import __version__
from qa_insights.api.endpoints.analytics import analytics_api
from qa_insights.services.data_service import DataService
from qa_insights.utils.config_loader import load_data_access_config

# Setup logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One DataService per process; its resolver decision and snapshot cache live here
    config = load_data_access_config()
    app.state.data_service = DataService.from_config(config)
    source = await app.state.data_service.initialize()
    logger.info("Data service ready, serving from %s", source.value)
    yield
    app.state.data_service.local.clear_cache()


app = FastAPI(
    title="QA Insights API",
    description="Test-execution analytics served from the search backend or the local snapshot",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(analytics_api, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "version": __version__}
