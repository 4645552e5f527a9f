"""
HTTP API for the alerting engine.
"""
