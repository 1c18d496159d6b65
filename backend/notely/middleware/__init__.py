# Middleware package init
"""
Notely Backend - Middleware Package
=====================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID for logs and the X-Request-ID header
    2. Logging: method, path, status and duration of every request
    3. CORS: FastAPI's CORSMiddleware, credentials allowed for FRONTEND_ORIGIN

Authentication is not middleware here. The auth gate is a route dependency
(notely.dependencies.require_user) so only /api/notes routes pay for the
session lookup.
"""
