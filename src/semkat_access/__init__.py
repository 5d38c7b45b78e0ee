"""
semkat_access

Top-level package for the Semkat access service (roles, policies, agent approvals)
and its client-side session/role context.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal to avoid import-time side effects across the codebase.
