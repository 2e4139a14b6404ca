"""
Shared session/PKCE state store (redis).
"""
