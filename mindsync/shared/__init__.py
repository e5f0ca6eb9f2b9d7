"""
Shared module package.

Contains the cross-cutting concerns every request passes through:
- Request pipeline assembly
- Security stages (CORS, headers, rate limiting)
- Body and cookie parsing
- Error handling and mapping
- Logging configuration
"""
