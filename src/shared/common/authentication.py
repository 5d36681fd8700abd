# shared/common/authentication.py
"""
JWT Authentication

Tokens are issued by the identity service. This service only checks the
signature, expiry and issuer, then exposes the subject as the participant id.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import jwt
from django.conf import settings
from rest_framework import authentication, exceptions
from rest_framework.request import Request

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ['exp', 'iat', 'sub', 'iss']


class TokenUser:
    """
    Principal built from a verified token payload.

    ``id`` is the token subject; every attempt the principal starts belongs
    to that participant id.
    """

    is_authenticated = True
    is_anonymous = False
    is_active = True

    def __init__(self, payload: Dict[str, Any]):
        self.payload = payload
        self.id: str = payload['sub']
        self.email: Optional[str] = payload.get('email')
        self.organization_id: Optional[str] = payload.get('organization_id')
        self.roles: List[str] = list(payload.get('roles') or [])

    def __str__(self) -> str:
        return f"TokenUser({self.id})"

    def has_any_role(self, roles: List[str]) -> bool:
        return any(role in self.roles for role in roles)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify a bearer token against ``settings.JWT_SETTINGS``.

    Raises:
        AuthenticationFailed: Bad signature, expired, wrong issuer or a
            required claim is missing
    """
    config = settings.JWT_SETTINGS
    try:
        return jwt.decode(
            token,
            config['VERIFYING_KEY'],
            algorithms=[config['ALGORITHM']],
            issuer=config['ISSUER'],
            options={'require': REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise exceptions.AuthenticationFailed('Token has expired')
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise exceptions.AuthenticationFailed('Invalid token')


class JWTAuthentication(authentication.BaseAuthentication):
    """Bearer token authentication for participants and staff."""

    keyword = 'Bearer'

    def authenticate(self, request: Request) -> Optional[Tuple[TokenUser, Dict[str, Any]]]:
        parts = authentication.get_authorization_header(request).split()

        if not parts or parts[0].decode('latin-1').lower() != self.keyword.lower():
            return None

        if len(parts) != 2:
            raise exceptions.AuthenticationFailed('Authorization header must be "Bearer <token>"')

        try:
            token = parts[1].decode('ascii')
        except UnicodeDecodeError:
            raise exceptions.AuthenticationFailed('Token contains invalid characters')

        payload = decode_token(token)
        return TokenUser(payload), payload

    def authenticate_header(self, request: Request) -> str:
        return self.keyword
