"""
Shared error handling package.

Centralizes error-to-HTTP mapping so that pipeline and route
errors are consistently translated into API responses.
"""
