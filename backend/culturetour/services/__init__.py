"""
CultureTour Backend — Services Layer
=====================================

What:  Business rules between the routes (HTTP) and the managed platforms.
How:   Services accept plain values, apply ownership and validation rules,
       call the gateways and return JSON-ready dicts.

Service Inventory:
    - DocumentStore:  Appwrite gateway (documents, users, sessions, recovery)
    - MediaService:   Cloudinary gateway (uploads, variants, metadata)
    - CircuitBreaker: Shared failure guard for both gateways
    - FileService:    Upload validation (extension, size, MIME, dimensions)
    - AuthService:    Registration, login, profile and account recovery
    - PostService, LikeService, CommentService: social feed
    - TourService, SceneService, HotspotService: virtual tours
"""
