# Middleware package init
"""
Stratus Backend: Middleware Package
====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit: rejects abusive clients before any auth or DB work
    2. Request ID: correlation id in a ContextVar and the X-Request-ID header
    3. Logging: one access line per request, tagged with that id

    Responses unwind in reverse, so the logged status and duration cover
    everything the route, GZip and CORS did.
"""
