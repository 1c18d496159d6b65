# Routes package init
"""
Notely Backend - API Routes Package
=====================================

Route Inventory:
    - auth.py:    GET  /auth/google             (start Google sign-in)
                  GET  /auth/google/callback    (finish sign-in, set session cookie)
                  GET  /auth/logout             (destroy session)
    - notes.py:   GET  /api/notes               (list caller's notes)
                  POST /api/notes               (create note)
                  DELETE /api/notes/{id}        (delete owned note)
    - health.py:  GET  /                        (service info)
                  GET  /health                  (database health)

Routes stay thin: they extract request data, call a service and shape the
response. Business rules live in notely.services.
"""
