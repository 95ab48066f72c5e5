"""
API package for the Rehab Plan API.

This package contains:
- deps.py: FastAPI dependency providers for DI
- errors.py: Engine error to HTTP status mapping
- routers/: API route handlers
"""
