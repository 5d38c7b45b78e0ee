"""
semkat_access.client

Client-side package: HTTP boundary, auth state holder, session/role context and admin
actions.
"""
