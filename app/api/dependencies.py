from fastapi import Request

from app.core.config import Settings, settings
from app.services.submission import SubmissionOrchestrator


def get_settings() -> Settings:
    return settings


def get_orchestrator(request: Request) -> SubmissionOrchestrator:
    """
    Dependency returning the process-wide orchestrator built at startup
    """
    return request.app.state.orchestrator
