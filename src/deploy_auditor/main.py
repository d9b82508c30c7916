"""FastAPI application for the deployment auditor."""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import CATEGORY_ORDER, AuditConfig, load_config
from .errors import ConfigError
from .models import CheckReport, RemediationPlan
from .remediation import generate_plan
from .runner import CHECKERS, run_category

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Deploy Auditor",
    description="Read-only diagnostics and remediation planning for deployed web application trees",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost:8000",
    ],
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)


def _resolve_config(config: Optional[AuditConfig]) -> AuditConfig:
    if config is not None:
        return config
    try:
        return load_config()
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/categories")
async def categories():
    """Checker categories in scan order."""
    return {"categories": CATEGORY_ORDER}


@app.post("/audit/{category}", response_model=CheckReport)
def audit(category: str, config: Optional[AuditConfig] = None) -> CheckReport:
    """
    Run one checker and persist its report.

    - **category**: one of the names returned by `/categories`
    - **config**: optional AuditConfig; the environment-derived config is used when omitted
    """
    if category not in CHECKERS:
        raise HTTPException(status_code=404, detail=f"Unknown category: {category}")
    config = _resolve_config(config)
    logger.info(f"Audit requested: {category} on {config.root}")
    return run_category(category, config, echo=False)


@app.post("/remediation", response_model=RemediationPlan)
def remediation(config: Optional[AuditConfig] = None) -> RemediationPlan:
    """Synthesize the remediation plan from the reports in the output directory."""
    config = _resolve_config(config)
    logger.info(f"Remediation plan requested for {config.output_dir}")
    return generate_plan(config)
