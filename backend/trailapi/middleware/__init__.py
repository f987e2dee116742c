# Middleware package init
"""
Trail API Backend — Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Access Log] → [Accept Gate] → [GZip] → [CORS] → Route

    1. Request ID first, so every later log line and error body carries it
    2. Access log wraps the rest, so 406 refusals are logged too
    3. Accept gate answers 406 before any body parsing or token check
"""
