"""
NoteKeeper Backend: Middleware Package
=======================================

Request path through the stack (outermost first):
    RateLimit → RequestID → Logging → GZip → CORS → route handler

Rate limiting rejects before anything else runs; the request id is set
before the access log line is written, so both carry the same id.
"""
