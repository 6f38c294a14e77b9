# Routes package init
"""
CookShare Backend — API Routes Package
========================================

Route Inventory:
    - groups.py:       /api/groups, /api/groups/search, /api/groups/{id}
                       settings, join, join requests, members
    - group_posts.py:  /api/groups/{id}/posts and its likes/comments
    - health.py:       GET /health

Routes stay thin: parse the request, call a service, return its model.
Status codes for failures come from the exception handlers in main.py.
"""
