"""
KeepWise Client
===============

Python side of the capture flow: page selection → summary → saved note.

    - api_client.py: NotesClient (httpx) and its error types
    - capture.py:    CaptureSession view-model and render_summary()
    - selection.py:  GET_SELECTION message schemas
    - token.py:      TokenCache with periodic refresh
"""
