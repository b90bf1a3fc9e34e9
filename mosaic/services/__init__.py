# Services package init
"""
Mosaic Backend — Services Layer
=================================

What:  Business logic between the routes (HTTP) and persistence (database, storage).

Service Inventory:
    - StorageBackend (abstract): object storage strategy
    - LocalStorageBackend / S3StorageBackend: the two concrete strategies
    - image_normalizer: decode → 400×400 RGB → gamma-aware resample → PNG
    - ContributionService: normalize → store → record workflow
    - ExportService: streamed zip of a collection's stored objects
    - CollectionService / AuthService: collection CRUD, accounts and tokens
    - SlidingWindowRateLimiter: per-client contribution limit
"""
