# Middleware package init
"""
Mosaic Backend — Middleware Package
=====================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID runs first so every log line and error body can carry it
    - Logging records status and duration on the way back out

The contribution rate limit is not middleware: it needs the authenticated
user first, so it is a route dependency (mosaic.dependencies).
"""
