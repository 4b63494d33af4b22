# Routes package init
"""
PhotoSharing Backend — API Routes Package
===========================================

Route Inventory:
    - categories.py:   GET  /api/categories, GET /api/category,
                       GET  /api/category/{id}, POST /api/category/{name}
    - photos.py:       GET  /api/photo/{id}, POST/PUT /api/photo,
                       DELETE /api/photo/{id}
    - annotations.py:  POST /api/annotation, DELETE /api/annotation/{id}
    - reports.py:      POST /api/report
    - users.py:        GET/PUT /api/user
    - user_photos.py:  GET  /api/userphoto, GET /api/userphoto/{user_id}
    - hero_photos.py:  GET  /api/herophoto
    - leaderboard.py:  GET  /api/leaderboard
    - iap.py:          POST /api/iap
    - configuration.py: GET /api/config
    - health.py:       GET  /health

Routes stay thin: they resolve the caller, apply the access checks and
delegate to the repository. DataLayerException and ServiceFaultError are
turned into fault responses by the handlers registered in main.py.
"""
