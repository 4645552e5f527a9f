"""
Service entry points for the alerting engine.

Each subdirectory contains a standalone service that runs in Docker.

Services:
    alert_engine: Headless engine (collectors, pipeline, lifecycle sweeps)
    alert_api: FastAPI operational API hosting the engine in-process
"""
