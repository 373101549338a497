"""
Bearer JWT authentication for the API.

Kept in its own module so that ``REST_FRAMEWORK`` settings can import the
class without pulling in views, which would create an import cycle while
DRF initialises authentication classes.
"""
from __future__ import annotations

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import RefreshToken


class BearerJWTAuthentication(JWTAuthentication):
    """Simple JWT authentication reading ``Authorization: Bearer <token>``."""

    www_authenticate_realm = 'hdscheduler'


def issue_tokens(user) -> RefreshToken:
    """Return a refresh token whose access token carries the user's role."""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    refresh['username'] = user.username
    return refresh
