"""
FastAPI application exposing the Blackjack simulator.

Each card is represented solely by its rank (e.g. ``"9"`` or ``"K"``),
preserving the correct probabilities by tracking four copies per rank per
deck in the shoe.  Rules, counting system and strategy tables are passed in
the request body and validated before any round is played; a malformed
configuration is answered with HTTP 400.

Usage:
    uvicorn app:app --reload

Endpoints:
    GET  /health            – simple health check
    GET  /strategies        – list of built-in strategy presets
    GET  /counting-systems  – counting systems with their card weights
    POST /simulate          – run a simulation and return aggregate statistics
    POST /spot-check        – replay one forced scenario over many shoes
    POST /round             – play a single round and return it in full
"""

import logging
from typing import List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import get_settings
from counting import describe_system, system_names
from errors import ConfigurationError
from schemas import (
    CountingSystemOut,
    RoundOutcomeOut,
    SimulationConfig,
    SimulationResultOut,
    SpotCheckConfig,
    SpotCheckResultOut,
)
from simulation import play_single_round, run_spot_check, run_with_progress
from strategies import STRATEGIES

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Blackjack Simulator API", version="2.0.0")


@app.exception_handler(RequestValidationError)
async def _validation_to_400(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "invalid_configuration", "detail": str(exc)})


@app.exception_handler(ConfigurationError)
async def _configuration_to_400(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=400, content={"error": "invalid_configuration", "detail": str(exc)})


def _check_iterations(iterations: int) -> None:
    if iterations > settings.max_iterations:
        raise ConfigurationError(
            f"iterations={iterations} exceeds the limit of {settings.max_iterations}"
        )


@app.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/strategies", response_model=List[str])
def list_strategies() -> List[str]:
    """Return a list of available strategy preset names."""
    return list(STRATEGIES.keys())


@app.get("/counting-systems", response_model=List[CountingSystemOut])
def list_counting_systems() -> List[CountingSystemOut]:
    return [CountingSystemOut(**describe_system(name)) for name in system_names()]


@app.post("/simulate", response_model=SimulationResultOut)
def simulate(req: SimulationConfig) -> SimulationResultOut:
    """
    Run ``iterations`` rounds and return aggregate statistics, including the
    per count bucket and per decision cell breakdowns.
    """
    _check_iterations(req.iterations)

    def _log_progress(completed: int, total: int) -> None:
        logger.info("simulate: %d/%d rounds", completed, total)

    result = run_with_progress(req, _log_progress)
    return SimulationResultOut.from_result(result)


@app.post("/spot-check", response_model=SpotCheckResultOut)
def spot_check(req: SpotCheckConfig) -> SpotCheckResultOut:
    _check_iterations(req.iterations)
    return SpotCheckResultOut.from_result(run_spot_check(req))


@app.post("/round", response_model=RoundOutcomeOut)
def single_round(req: SimulationConfig) -> RoundOutcomeOut:
    """Play one round from a freshly seeded shoe."""
    return RoundOutcomeOut.from_outcome(play_single_round(req))
