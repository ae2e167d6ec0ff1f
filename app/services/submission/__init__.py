from app.services.submission.orchestrator import SubmissionOrchestrator, build_orchestrator

__all__ = [
    "SubmissionOrchestrator",
    "build_orchestrator",
]
