"""
Interfaces layer package.

Contains FastAPI routers, Pydantic response schemas and the route
mounter. No business logic belongs here.
"""
