"""Migration run endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ...config import Config
from ...exceptions import ConfigurationError, UnknownPackage
from ...models.migration import RunRequest
from ...orchestrator import MigrationOrchestrator
from ..models import RunCreate, RunResponse

router = APIRouter()


def get_config() -> Config:
    """Connection config, loaded from $PORTER_CONFIG or ./config.json."""
    try:
        return Config.load()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=RunResponse)
def create_run(data: RunCreate, config: Config = Depends(get_config)):
    """Run a migration to completion and return its result."""
    request = RunRequest.from_dict(data.model_dump())

    try:
        orchestrator = MigrationOrchestrator(config, request)
    except UnknownPackage as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    state = orchestrator.run()
    return RunResponse(**state.to_dict())
