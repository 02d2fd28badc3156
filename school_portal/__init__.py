"""School portal backend.

A FastAPI application serving the public school website content, the
academic dashboard (classes, schedules, grades, users) and the
verifiable document registry. `school_portal.main:app` is the ASGI app.
"""
