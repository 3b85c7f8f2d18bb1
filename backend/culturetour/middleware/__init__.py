"""
CultureTour Backend — Middleware Package
=========================================

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit first: rejects abusive clients before any processing
    2. Request ID: correlation ID stored in a ContextVar for every log line
    3. Logging: method, path, status and duration per request
"""
