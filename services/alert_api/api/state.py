"""
Request-scoped access to the engine stored on app.state.
"""

from fastapi import HTTPException, Request

from intelligent_alerts.engine import IntelligentAlertEngine


def get_engine(request: Request) -> IntelligentAlertEngine:
    """
    FastAPI dependency returning the application's engine.

    Raises:
        HTTPException: 503 if the engine is not available.
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Alert engine is not available")
    return engine
