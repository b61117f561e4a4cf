# ─────────────────────────────────────────────────────────────────
# routes/checks.py — Operator Endpoints
#
# The scheduler runs the offline check on its own. These endpoints
# let an operator run one cycle on demand and look at the outcome
# of the most recent cycle.
#
# This file does NOT know how devices are evaluated (checker.py)
# or how notifications leave (alerts.py). It reads the cycle that
# main.py wired up from app.state.
# ─────────────────────────────────────────────────────────────────

import logging

from fastapi import APIRouter, HTTPException, Request

from models import CycleResult

logger = logging.getLogger("routes")

router = APIRouter(
    prefix="/checks",
    tags=["Checks"]
)


# ─────────────────────────────────────────────────────────────────
# POST /checks/run — Run one offline check right now
# ─────────────────────────────────────────────────────────────────

@router.post("/run", response_model=CycleResult)
async def run_check(request: Request):
    """
    Runs a single cycle outside the schedule and returns its result.

    The response is always 200: a registry failure shows up as
    status "registry_error" in the body, exactly as it would in a
    scheduled run.
    """
    logger.info("▶️  Manual offline check requested")

    result = await request.app.state.cycle.run_cycle()
    request.app.state.last_result = result
    return result


# ─────────────────────────────────────────────────────────────────
# GET /checks/last — Result of the most recent cycle
# ─────────────────────────────────────────────────────────────────

@router.get("/last", response_model=CycleResult)
def last_check(request: Request):
    result = getattr(request.app.state, "last_result", None)

    if result is None:
        raise HTTPException(
            status_code=404,
            detail="No offline check has completed yet."
        )

    return result
