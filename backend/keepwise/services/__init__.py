"""
KeepWise — Services Layer
==========================

What:  Adapters to external providers: identity and summarization.

Service Inventory:
    - TokenVerifier (auth_base.py): bearer token → Identity
        AnonymousTokenVerifier, FirebaseTokenVerifier, JWTTokenVerifier
    - firebase_app.py: shared firebase-admin App initialization
    - Summarizer (summarizer_base.py): text → summary
        GeminiSummarizer (gemini_service.py)
"""
