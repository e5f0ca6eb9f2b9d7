"""
MindSync API server.

Application package root. A thin HTTP bootstrap: the request pipeline
(CORS, body parsing, cookies, compression, security headers, rate
limiting), the health and versioned API routes, and the process
lifecycle.

Layers:
    - core: Configuration.
    - interfaces: FastAPI routers, Pydantic schemas, route mounting.
    - api: Versioned route tables.
    - shared: Cross-cutting concerns (pipeline, security, parsing,
      errors, logging).
"""
