"""
semkat_access.auth

Authentication package (the backing store's auth subsystem).

Responsibilities:
- Session token issuing and validation.
- Password hashing.
- Sign-up / sign-in service and FastAPI auth dependencies.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Roles are never embedded in session tokens; they are read from the Role Store at
# access time (see `semkat_access.policy`).
