"""
semkat_access.observability

Observability package.

Responsibilities:
- structlog configuration shared by the service and the client package.
- Request id propagation and access logging for the HTTP surface.
"""
