"""
semkat_access.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the persistence layer.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories are intentionally thin; policy checks and workflow rules belong in
# `semkat_access.policy` and `semkat_access.services`.
