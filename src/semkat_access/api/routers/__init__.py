"""
semkat_access.api.routers

Router modules for the auth subsystem, the REST/RPC surface and probes.
"""

# Package marker.
