"""FastAPI dependencies shared by the route modules."""

from fastapi import Request

from loopcore.settings import AnalysisSettings


def get_settings(request: Request) -> AnalysisSettings:
    """Analysis settings loaded at startup, or from the environment if the app skipped lifespan."""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = AnalysisSettings.from_env()
        request.app.state.settings = settings
    return settings
