"""
Google OAuth2/OpenID Connect identity provider client.
"""
