"""
Challenge resolution: login, consent, logout, device and token-refresh flows.
"""
