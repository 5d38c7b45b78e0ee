"""
semkat_access.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Repositories in this package are trusted data access: they never evaluate policies.
# Caller-facing access goes through `semkat_access.policy.store.SecuredStore`.
