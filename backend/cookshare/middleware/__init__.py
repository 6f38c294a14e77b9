# Middleware package init
"""
CookShare Backend — Middleware Package
========================================

What:  Per-request concerns shared by every route.

Execution order on the way in:
    Request → [Rate Limit] → [Request ID] → [Access Log] → [CORS] → Route

    - Rate limiting rejects a flooding client before any database work.
    - The request ID is set before the access log line is written, so the
      line and every service log of the request carry the same ID.
"""
