"""
CultureTour Backend — API Routes Package
=========================================

Route Inventory:
    - auth.py:      /api/auth/*      (register, login, profile, recovery)
    - users.py:     /api/users/*     (profile administration)
    - posts.py:     /api/posts/*     (panorama posts, feed, search)
    - likes.py:     /api/posts/{id}/likes/*, /api/posts/users/{id}/likes
    - comments.py:  /api/posts/{id}/comments/*
    - tours.py:     /api/tours/*
    - scenes.py:    /api/scenes/*
    - hotspots.py:  /api/hotspots/*
    - images.py:    /api/images/*
    - health.py:    /health, /

Routes stay THIN: pull values out of the request, call one service method,
wrap the result in the `{"success": true, ...}` envelope.
"""
