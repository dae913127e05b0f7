"""SonarQube integration client.

Responsible for two things:
1. Fetching the raw issues and measures for a component from the SonarQube API
2. Reshaping that response into the nested payload the SignalAdapter reads

Neither step counts, groups or scores anything. Issue severities are passed
on as a flat list; turning them into category counts is the adapter's job,
driven by configuration.

Live mode:    set SONARQUBE_BASE_URL in your .env and fetch_sonarqube_data()
              calls the real API. SONARQUBE_TOKEN is sent as basic auth.
Fixture mode: leave SONARQUBE_BASE_URL unset and fetch_sonarqube_data()
              loads fixtures/sonarqube_project.json.

SonarQube Web API reference: https://next.sonarqube.com/sonarqube/web_api
"""

import json
import logging
import os
import pathlib

import httpx

logger = logging.getLogger(__name__)

SOURCE_TYPE = "sonarqube"

# Measures requested from /api/measures/component. Anything the adapter
# config references under "metrics." must be listed here.
DEFAULT_METRIC_KEYS = (
    "coverage",
    "duplicated_lines_density",
    "bugs",
    "vulnerabilities",
    "code_smells",
    "sqale_rating",
    "reliability_rating",
    "security_rating",
    "alert_status",
)

FIXTURE_PATH = pathlib.Path(__file__).parents[1] / "fixtures" / "sonarqube_project.json"


# ---------------------------------------------------------------------------
# Fetcher: live or fixture depending on env
# ---------------------------------------------------------------------------

async def fetch_sonarqube_data(component_key: str) -> dict:
    """Fetch raw issues and measures for a SonarQube component.

    Args:
        component_key: SonarQube project or component key.

    Returns:
        The raw response merged into one dict with keys "component" (as
        returned by /api/measures/component) and "issues" (as returned by
        /api/issues/search). Either may be absent in fixture data.

    Raises:
        httpx.HTTPStatusError: If a SonarQube API call returns a non-2xx
            response. The API layer reports this per tool.
    """
    base_url = os.environ.get("SONARQUBE_BASE_URL")

    if not base_url:
        logger.info("SONARQUBE_BASE_URL not set — using fixture data for '%s'.", component_key)
        return _load_fixture()

    logger.info("Fetching SonarQube data for component '%s'.", component_key)
    return await _fetch_from_api(base_url, component_key, os.environ.get("SONARQUBE_TOKEN"))


async def _fetch_from_api(base_url: str, component_key: str, token: str | None) -> dict:
    """Call /api/issues/search and /api/measures/component for one component."""
    # SonarQube user tokens go in the basic-auth username with an empty password.
    auth = httpx.BasicAuth(token, "") if token else None
    headers = {"Accept": "application/json"}

    async with httpx.AsyncClient(base_url=base_url, headers=headers, auth=auth, timeout=15) as client:
        issues_resp = await client.get(
            "/api/issues/search",
            params={"componentKeys": component_key, "ps": 500},
        )
        issues_resp.raise_for_status()
        issues = issues_resp.json()

        measures_resp = await client.get(
            "/api/measures/component",
            params={"component": component_key, "metricKeys": ",".join(DEFAULT_METRIC_KEYS)},
        )
        measures_resp.raise_for_status()
        measures = measures_resp.json()

    logger.info(
        "SonarQube returned %d issues and %d measures for '%s'.",
        len(issues.get("issues", [])),
        len(measures.get("component", {}).get("measures", [])),
        component_key,
    )

    return {
        "component": measures.get("component", {}),
        "issues": issues.get("issues", []),
    }


def _load_fixture() -> dict:
    """Load the SonarQube fixture for demo runs and tests."""
    if FIXTURE_PATH.exists():
        with open(FIXTURE_PATH) as f:
            return json.load(f)

    logger.warning("%s not found — using an empty SonarQube response.", FIXTURE_PATH.name)
    return {"component": {"measures": []}, "issues": []}


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def parse_sonarqube_response(raw: dict) -> dict:
    """Reshape a raw SonarQube response into the adapter's payload.

    Input (abridged):
    {
        "component": {"key": "...", "measures": [{"metric": "coverage", "value": "78.4"}, ...]},
        "issues": [{"key": "...", "severity": "MAJOR", ...}, ...]
    }

    Output:
    {
        "metrics": {"coverage": "78.4", ...},
        "issues_severities": ["MAJOR", ...],
        "issues_total": 12
    }

    Sections missing from the input are missing from the output. Measure
    values stay as SonarQube sends them (strings); the adapter normalizes
    them.

    Args:
        raw: Decoded SonarQube response.

    Returns:
        The normalized payload. Empty if raw has neither section.
    """
    normalized: dict = {}

    component = raw.get("component")
    if isinstance(component, dict) and "measures" in component:
        metrics = {}
        for measure in component.get("measures") or []:
            metric = measure.get("metric")
            if metric is None:
                continue
            # Period-only measures carry their value under "period".
            value = measure.get("value")
            if value is None:
                value = (measure.get("period") or {}).get("value")
            metrics[metric] = value
        normalized["metrics"] = metrics

    issues = raw.get("issues")
    if isinstance(issues, list):
        normalized["issues_severities"] = [
            issue["severity"] for issue in issues if isinstance(issue, dict) and issue.get("severity")
        ]
        normalized["issues_total"] = len(issues)

    return normalized
