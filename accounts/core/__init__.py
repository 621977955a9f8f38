"""
Core utilities shared across the account lifecycle backend.

This package hosts configuration, the outcome/error types, the clock and URL
helpers, token digests, the authenticated identity type and the mail adapter.
Services depend on these primitives instead of importing FastAPI or the
storage layer directly.
"""
