"""
semkat_access.services

Service layer (transaction owners).

Responsibilities:
- Agent application workflow.
"""

# Package marker.
