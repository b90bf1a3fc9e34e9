# Routes package init
"""
Mosaic Backend — API Routes Package
=====================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - auth.py:         POST /auth/register, POST /auth/login
    - collections.py:  GET/POST /collections, GET /collections/owned,
                       GET/DELETE /collections/{id}, GET /collections/{id}/zip
    - contribute.py:   POST /contribute/{id}   (multipart or base64 JSON upload)
    - health.py:       GET  /health

Routes stay thin: they extract request data, call a service, and pick the
status code. Business logic lives in mosaic.services.
"""
