"""
Pydantic schemas for the server's own endpoints.

These schemas define the API contract. No business logic belongs here.
"""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response schema for the liveness endpoint."""

    status: bool
    message: str


class ErrorResponse(BaseModel):
    """Body of every error produced by the pipeline or error handlers."""

    error: str
