"""
Persistence adapters.

These modules encapsulate how accounts, verification tokens and pending
deletions are stored. Services depend on the repository instead of issuing
SQL themselves.
"""
