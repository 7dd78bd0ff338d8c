"""
Credential & token service

Passwords are hashed with werkzeug's salted hashes; bearer tokens are HS256
JWTs (PyJWT) carrying the subject identity (user email) in `sub`.

The service only proves that a token is valid. Whether the subject still
maps to a known user is for the controllers to check.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Mapping, Optional

import jwt
from flask import g, request
from werkzeug.security import check_password_hash, generate_password_hash

from .errors import InvalidToken, MissingCredential

ALGORITHM = 'HS256'


@dataclass(frozen=True)
class Principal:
    """Authenticated subject of the current request"""

    identity: str
    issued_at: datetime
    expires_at: Optional[datetime] = None


class CredentialService:
    """
    Password hashing plus bearer token issuance / verification

    Usage:
        auth = CredentialService(signing_key='...', token_ttl=86400)
        digest = auth.hash_password('secret')
        auth.verify_password('secret', digest)          # True

        token = auth.issue_token('jane@example.com')
        auth.verify_token(token).identity                # 'jane@example.com'
    """

    def __init__(self, signing_key: str, token_ttl: Optional[int] = 86400, logger=None):
        """
        Args:
            signing_key: Default HMAC key used to sign and verify tokens
            token_ttl: Token lifetime in seconds; 0 or None issues tokens
                without an `exp` claim
        """
        self.signing_key = signing_key
        self.token_ttl = token_ttl or None
        self.logger = logger or logging.getLogger(__name__)

    # ============================================
    # PASSWORDS
    # ============================================

    def hash_password(self, password: str) -> str:
        return generate_password_hash(password)

    def verify_password(self, password: str, digest: str) -> bool:
        if not password or not digest:
            return False
        try:
            return check_password_hash(digest, password)
        except ValueError:
            # Digest not produced by hash_password
            return False

    # ============================================
    # TOKENS
    # ============================================

    def issue_token(self, subject: str, signing_key: Optional[str] = None) -> str:
        issued_at = datetime.now(timezone.utc)
        payload = {'sub': subject, 'iat': issued_at}
        if self.token_ttl:
            payload['exp'] = issued_at + timedelta(seconds=self.token_ttl)
        return jwt.encode(payload, signing_key or self.signing_key, algorithm=ALGORITHM)

    def verify_token(self, token: str, signing_key: Optional[str] = None) -> Principal:
        """
        Check signature, algorithm and structure of a token

        Raises:
            InvalidToken: On any verification failure
        """
        try:
            claims = jwt.decode(
                token,
                signing_key or self.signing_key,
                algorithms=[ALGORITHM],
                options={'require': ['sub', 'iat']},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken('Token has expired')
        except jwt.InvalidTokenError as e:
            self.logger.info(f"Token rejected: {e}")
            raise InvalidToken('Invalid token')

        subject = claims['sub']
        if not isinstance(subject, str) or not subject:
            raise InvalidToken('Invalid token')

        expires_at = None
        if 'exp' in claims:
            expires_at = datetime.fromtimestamp(claims['exp'], tz=timezone.utc)

        return Principal(
            identity=subject,
            issued_at=datetime.fromtimestamp(claims['iat'], tz=timezone.utc),
            expires_at=expires_at,
        )

    def authenticate_request(self, headers: Mapping[str, str],
                             signing_key: Optional[str] = None) -> Principal:
        """
        Extract the bearer token from request headers and verify it

        Raises:
            MissingCredential: No Authorization header or not `Bearer <token>`
            InvalidToken: Token present but not valid
        """
        token = bearer_token(headers)
        return self.verify_token(token, signing_key)


def bearer_token(headers: Mapping[str, str]) -> str:
    value = headers.get('Authorization')
    if not value:
        raise MissingCredential('Authentication required')

    parts = value.split()
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        raise MissingCredential('Authorization header must be: Bearer <token>')
    return parts[1]


def authenticated(method):
    """
    Guard a controller operation behind a valid bearer token

    Runs before the operation body, so a failed authentication never reaches
    the repository. The principal is stored in `g.principal`.

    Usage:
        class CompanyController(ResourceController):
            requires = ('repository', 'responder', 'auth')

            @authenticated
            def delete(self, id):
                ...
    """
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        g.principal = self.auth.authenticate_request(request.headers)
        return method(self, *args, **kwargs)

    wrapper.requires_auth = True
    return wrapper


__all__ = [
    'Principal',
    'CredentialService',
    'authenticated',
    'bearer_token',
]
