"""
Use cases of the account lifecycle backend.

Each service module orchestrates the repository and the adapters to implement
one business flow (registration, email verification, soft delete/recovery).

Routers call these services instead of touching the database directly.
"""
