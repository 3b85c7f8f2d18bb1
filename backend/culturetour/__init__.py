"""
CultureTour Backend — Application Package Initializer
======================================================

What: Marks the `culturetour` directory as a Python package.
Who:  Imported by uvicorn (`culturetour.main:app`), pytest, and every module
      via `from culturetour.config import settings`.

Architecture Note:
    The backend is a thin layered service in front of two managed platforms:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Rules)   │  ← ownership, validation, joins
    ├─────────────────────────────────────┤
    │   Gateways (DocumentStore, Media)   │  ← retry, circuit breaker, errors
    ├─────────────────────────────────────┤
    │     Appwrite          Cloudinary    │  ← documents/users, images
    └─────────────────────────────────────┘

    Routes never talk to the SDKs directly; services never build HTTP
    responses. Gateways translate SDK failures into the exceptions in
    `culturetour.exceptions`.
"""

__version__ = "1.0.0"
