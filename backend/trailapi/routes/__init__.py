# Routes package init
"""
Trail API Backend — API Routes Package
=======================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - resources.py:  router factory shared by every resource kind
    - trails.py:     /trails CRUD + /trails/{id}/trailheads/{id} links
    - trailheads.py: /trailheads CRUD
    - users.py:      GET /users
    - auth.py:       GET / and GET /user (Google sign-in)
    - health.py:     GET /health

Design Principle:
    Routes stay thin: extract path, query, body and token, call a service,
    pick the status code. Authorization and validation live in services.
"""
