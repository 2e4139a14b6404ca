"""
Ory Hydra admin/public API client.
"""
