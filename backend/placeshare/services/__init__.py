"""
PlaceShare Backend — Services Layer
=====================================

Service Inventory:
    - Geocoder (abstract): address → coordinates
    - GoogleGeocoder: Geocoder backed by the Google Geocoding API
    - BlobStore (abstract) / FileService: image storage on local disk
    - PlaceService: reads, ownership checks, transactional create and delete
"""
