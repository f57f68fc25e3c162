"""
KeepWise Backend — API Routes Package
======================================

Route Inventory:
    - notes.py:   POST   /api/notes         (save a note)
                  GET    /api/notes         (list the caller's notes)
                  GET    /api/notes/{id}    (get one note)
                  DELETE /api/notes/{id}    (delete one note)
    - health.py:  GET    /health            (service health check)

Routes stay thin: resolve the caller, call the store, shape the envelope.
"""
