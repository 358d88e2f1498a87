"""
PlaceShare Backend — API Routes Package
=========================================

Route Inventory:
    - places.py:  GET    /api/places/{pid}
                  GET    /api/places/user/{uid}
                  POST   /api/places
                  PATCH  /api/places/{pid}
                  DELETE /api/places/{pid}
                  GET    /uploads/images/{path}
    - health.py:  GET    /health

Routes stay thin: extract request data, call PlaceService, shape the
response. Business rules live in services.
"""
