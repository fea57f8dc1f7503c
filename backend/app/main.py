r"""backend\app\main.py

Main entrypoint for the FastAPI application.

The API is the data source behind the GreenGrocer ordering dashboard: it
serves reference data (users, stores, products), per-store datasets (order
recommendations, history, spoilage, notifications) and regional/corporate
performance.  A health endpoint is also provided for readiness/liveness
checks.  Configuration is read from environment variables and YAML files in
`configs/`.
"""


import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from .api.v1 import health, insights, reference, stores
from .core.config import get_settings
from .core.observability import TokenAndRateLimitMiddleware, metrics_endpoint

# Load .env from repo root
BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / ".env")

settings = get_settings()

logging.getLogger(__name__).info(
    "LLM enabled: %s model=%s",
    bool(settings.gemini_api_key),
    settings.gemini_model,
)

app = FastAPI(title="GreenGrocer Ordering API", version="0.1.0")

# Allow cross-origin requests from the Streamlit UI (and others).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,  # In production specify your UI domain(s)
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TokenAndRateLimitMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(reference.router, prefix="/api/v1")
app.include_router(stores.router, prefix="/api/v1")
app.include_router(insights.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()
