# Routes package init
"""
Wayfarer Backend — Routes Package
===================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource; handlers stay thin and
       delegate to the services.

Route Inventory:
    - views.py:    GET /, /tour/{slug}, /login           (HTML pages)
    - tours.py:    /api/v1/tours[/{id}], /api/v1/tours/{id}/reviews
    - users.py:    /api/v1/users[/{id}]
    - reviews.py:  /api/v1/reviews[/{id}]
    - health.py:   GET /health
    - fallback.py: every other path and method → 404 (mounted last)
"""
