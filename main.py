"""Health score platform — REST API.

This file handles three concerns:

1. Ingestion — accepts normalized tool payloads (or pulls them from a tool
   integration) and turns them into stored signals.

2. Scoring — computes a health score for an entity from its stored signals
   and serves the latest score and its history.

3. Configuration — replaces the configuration bundle at runtime. The next
   request sees the new configuration; no restart needed.

Flow for a tool integration:
    POST /api/v1/tools/integrate
        → fetch raw data from the tool (live or fixture)
        → parse into the adapter's payload shape
        → adapt into signals and persist them
        → report per-tool results

    then:
        POST /api/v1/scores/{entity_type}/{entity_id}/compute
        → score stored signals, persist a new history record, attach debt

Run locally:
    uv run uvicorn main:app --reload
"""

import logging
import logging.handlers
import os
import pathlib
from decimal import Decimal
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

load_dotenv()

from core.runtime import HealthScorePlatform
from core.store import InMemoryStore
from integrations.sonarqube import SOURCE_TYPE as SONARQUBE, fetch_sonarqube_data, parse_sonarqube_response
from schemas.result import HealthScore
from utils.parse import ConfigParseError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FILE = pathlib.Path(__file__).parent / "healthscore.log"
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_file_handler = logging.handlers.RotatingFileHandler(
    LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8",
)
_file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

_root_logger = logging.getLogger()
_root_logger.setLevel(logging.INFO)
_root_logger.addHandler(_file_handler)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App + CORS
# ---------------------------------------------------------------------------

app = FastAPI(title="Health Score Platform")

# ALLOWED_ORIGINS env var overrides the default for production deployments.
_origins = os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Platform setup
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_PATH = pathlib.Path(__file__).parent / "fixtures" / "healthscore_config.json"


def _seed_store() -> InMemoryStore:
    """Create the store and load the seed configuration, if there is one."""
    config_path = pathlib.Path(os.environ.get("HEALTHSCORE_CONFIG", DEFAULT_CONFIG_PATH))
    if not config_path.exists():
        logger.warning("Config bundle %s not found — starting with no configuration.", config_path)
        return InMemoryStore()
    return InMemoryStore.from_config(config_path)


# In-memory store: configuration plus append-only signals and scores.
# Lost on server restart.
store = _seed_store()
platform = HealthScorePlatform(config=store, records=store)

# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class SignalIngestionRequest(BaseModel):
    """Normalized payload from an external tool, already in adapter shape."""

    source_type: str = Field(min_length=1)
    source_id: str = Field(min_length=1)
    entity_type: str = Field(min_length=1)
    entity_id: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)


class ToolIntegrationRequest(BaseModel):
    """Pull data from one or more tools for an entity.

    tool_config is keyed by tool name. For SonarQube:
        {"sonarqube": {"component_key": "my-project"}}
    Without a component key the entity_id is used.
    """

    entity_type: str = Field(min_length=1)
    entity_id: str = Field(min_length=1)
    tools: list[str] = Field(min_length=1)
    tool_config: dict[str, dict[str, str]] = Field(default_factory=dict)


class DebtContributionView(BaseModel):
    metric_key: str
    dimension: str
    contribution: Decimal
    severity: str
    description: str


class HealthScoreResponse(BaseModel):
    """Health score as returned to API clients."""

    id: str
    entity_type: str
    entity_id: str
    overall_score: Decimal
    dimension_scores: dict[str, Decimal]
    debt_contributions: list[DebtContributionView]
    computed_at: str
    computation_version: str

    @classmethod
    def from_score(cls, score: HealthScore) -> "HealthScoreResponse":
        return cls(
            id=score.id,
            entity_type=score.entity_type,
            entity_id=score.entity_id,
            overall_score=score.overall_score,
            dimension_scores=score.dimension_scores,
            debt_contributions=[
                DebtContributionView(**d.model_dump(exclude={"signal_id"}))
                for d in score.debt_contributions
            ],
            computed_at=score.computed_at.isoformat(),
            computation_version=score.computation_version,
        )


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------

@app.post("/api/v1/signals")
def ingest_signals(request: SignalIngestionRequest):
    """Adapt a tool payload into signals and store them.

    Returns the metric keys of the signals that were produced. Definitions
    that extracted nothing are not an error and simply don't appear.
    """
    logger.info(
        "Ingesting signals from %s for %s/%s.",
        request.source_type, request.entity_type, request.entity_id,
    )
    signals = platform.adapt_to_signals(
        request.source_type,
        request.source_id,
        request.entity_type,
        request.entity_id,
        request.data,
    )
    return {
        "status": "success",
        "signals_ingested": len(signals),
        "signals": [s.metric_key for s in signals],
    }


@app.get("/api/v1/signals/{entity_type}/{entity_id}")
def get_signals(entity_type: str, entity_id: str):
    """Return every stored signal document for an entity, oldest first."""
    return store.signal_documents(entity_type, entity_id)


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------

@app.post("/api/v1/scores/{entity_type}/{entity_id}/compute", response_model=HealthScoreResponse)
def compute_score(entity_type: str, entity_id: str):
    """Compute a new health score from the entity's stored signals.

    Returns 404 if the entity has no signals yet.
    """
    logger.info("Computing health score for %s/%s.", entity_type, entity_id)
    score = platform.evaluate(entity_type, entity_id)
    if score is None:
        raise HTTPException(status_code=404, detail=f"No signals found for {entity_type}/{entity_id}.")
    return HealthScoreResponse.from_score(score)


@app.get("/api/v1/scores/{entity_type}/{entity_id}", response_model=HealthScoreResponse)
def get_latest_score(entity_type: str, entity_id: str):
    """Return the most recent stored health score.

    The stored record carries no debt contributions; call compute for those.
    Returns 404 if no score has been computed yet.
    """
    score = store.latest_health_score(entity_type, entity_id)
    if score is None:
        raise HTTPException(status_code=404, detail=f"No health score for {entity_type}/{entity_id}.")
    return HealthScoreResponse.from_score(score)


@app.get("/api/v1/scores/{entity_type}/{entity_id}/history", response_model=list[HealthScoreResponse])
def get_score_history(entity_type: str, entity_id: str):
    """Return every stored health score for an entity, newest first."""
    return [HealthScoreResponse.from_score(s) for s in store.health_score_history(entity_type, entity_id)]


# ---------------------------------------------------------------------------
# Tool integrations
# ---------------------------------------------------------------------------

@app.post("/api/v1/tools/integrate")
async def integrate_tools(request: ToolIntegrationRequest):
    """Fetch, parse and adapt data from each requested tool.

    Each tool is handled independently: a failing or unknown tool gets an
    error entry in tool_results and the others still run.
    """
    logger.info("Integrating tools %s for %s/%s.", request.tools, request.entity_type, request.entity_id)

    total = 0
    tool_results: dict[str, dict] = {}

    for tool in request.tools:
        try:
            metric_keys = await _integrate_tool(
                tool.lower(),
                request.entity_type,
                request.entity_id,
                request.tool_config.get(tool, {}),
            )
        except Exception as exc:
            logger.error("Error integrating tool %s: %s", tool, exc)
            tool_results[tool] = {"status": "error", "message": str(exc)}
            continue

        total += len(metric_keys)
        tool_results[tool] = {
            "status": "success",
            "signals_count": len(metric_keys),
            "signals": metric_keys,
        }
        logger.info("Tool %s produced %d signals.", tool, len(metric_keys))

    return {
        "entity_type": request.entity_type,
        "entity_id": request.entity_id,
        "total_signals": total,
        "tool_results": tool_results,
    }


async def _integrate_tool(tool: str, entity_type: str, entity_id: str, config: dict[str, str]) -> list[str]:
    """Run fetch → parse → adapt for one tool and return the stored metric keys."""
    match tool:
        case "sonarqube":
            component_key = config.get("component_key") or config.get("componentKey") or entity_id
            raw = await fetch_sonarqube_data(component_key)
            payload = parse_sonarqube_response(raw)
            signals = platform.adapt_to_signals(SONARQUBE, component_key, entity_type, entity_id, payload)
            return [s.metric_key for s in signals]
        case _:
            raise ValueError(f"Unknown tool '{tool}'. Supported tools: sonarqube.")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@app.put("/api/v1/config")
def replace_config(bundle: dict[str, Any]):
    """Replace the whole configuration bundle.

    Invalid documents inside the bundle are skipped (and logged); a bundle
    that isn't a valid bundle at all is rejected with 400.
    """
    try:
        loaded = store.load_config(bundle)
    except ConfigParseError as exc:
        logger.error("Rejected configuration bundle: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))

    return {"status": "success", "loaded": loaded}
