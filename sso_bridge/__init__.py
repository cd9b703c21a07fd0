"""
SSO Bridge

Authenticates backend-to-backend requests carrying RS256 service tokens,
exchanges one-time SSO codes with the issuing authority and resolves stable
user logins for downstream integrations.
"""

__version__ = "1.0.0"
