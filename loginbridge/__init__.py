"""
Login/consent bridge between an OAuth2/OpenID Connect authorization server (Ory Hydra)
and an upstream identity provider (Google).

The authorization server issues login, consent, logout and device challenges; this
package resolves them and hands back the redirect that completes the OAuth2 flow.
"""
