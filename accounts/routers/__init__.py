"""
FastAPI routers grouped by domain (email verification, account lifecycle).

Each module exposes an APIRouter that the factory in app.py includes. Routers
translate service results into HTTP responses and hold no business rules.
"""
