"""
Builderfolio - HTTP API

FastAPI application, dependencies, middleware and routes.
"""
