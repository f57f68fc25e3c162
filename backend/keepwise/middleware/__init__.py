"""
KeepWise Backend — Middleware Package
======================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and any error envelope carry
    the id. Responses pass back through the chain in reverse.
"""
