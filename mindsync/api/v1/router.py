"""
Version 1 API route table.

Everything under ``/api/v1`` is delegated here. The authentication
routes that populate this table live outside this service; routers
registered on ``router`` are served as-is.
"""

from fastapi import APIRouter

API_V1_PREFIX = "/api/v1"

router = APIRouter()
