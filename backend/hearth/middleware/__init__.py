"""
Hearth Butler Backend — Middleware
====================================

Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → route

Rate limiting runs first so rejected requests cost nothing; the request ID
is set before the access logger reads it.
"""
