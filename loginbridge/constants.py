"""
Flow constants.
"""

# Login acceptance.
LOGIN_REMEMBER = True
LOGIN_REMEMBER_FOR_SECONDS = 3600
LOGIN_ACR = "0"

# Consent acceptance.
CONSENT_REMEMBER = True
CONSENT_REMEMBER_FOR_SECONDS = 3600
DEFAULT_CONSENT_SCOPES = ["openid", "offline", "offline_access", "profile", "email"]

# Upstream (Google) login.
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPES = "openid profile email"
PKCE_SESSION_TTL_SECONDS = 600
PKCE_SESSION_PREFIX = "pkce_session:"

# Device authorization grant (RFC 8628).
DEVICE_CODE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
DEVICE_DEFAULT_INTERVAL_SECONDS = 5
DEVICE_SLOW_DOWN_INCREMENT_SECONDS = 5

# Upstream HTTP.
UPSTREAM_TIMEOUT_SECONDS = 10.0
FLOW_TIMEOUT_SECONDS = 30.0

# Browser forms (double-submit CSRF token).
CSRF_COOKIE_NAME = "loginbridge_csrf"
CSRF_FIELD_NAME = "csrf_token"
CSRF_TTL_SECONDS = 3600
