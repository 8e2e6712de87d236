"""
HelpFlow Backend: Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation id for logs, error bodies and the response header
    2. Logging: one access line per request, carrying that id
    3. GZip / CORS: FastAPI built-ins

    Responses unwind in reverse, so the access line sees the final status code.
"""
