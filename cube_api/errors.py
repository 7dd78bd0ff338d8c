"""
Error taxonomy for the Cube API

Every failure a request can run into maps to exactly one of these classes.
The application boundary turns them into responses:

- ValidationError        400  bad or missing input
- AuthError              403  missing / invalid bearer token, bad credentials
- NotFoundError          404  entity not found
- RouteNotFoundError     404  no route for the path
- MethodNotAllowedError  405  path exists, method does not
- ConflictError          409  constraint violation in the store
- PersistenceError       500  any other store failure
- UnexpectedError        500  catch-all
"""

from typing import Iterable


class ApiError(Exception):
    """Base class for every error the API knows how to answer"""

    status_code = 500
    # Message sent to the client when the error must not leak details
    public_message = None

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    @property
    def client_message(self) -> str:
        return self.public_message or self.message


class ValidationError(ApiError):
    status_code = 400


class AuthError(ApiError):
    status_code = 403


class MissingCredential(AuthError):
    """No usable `Authorization: Bearer <token>` header"""


class InvalidToken(AuthError):
    """Bad signature, malformed token, wrong algorithm or expired"""


class NotFoundError(ApiError):
    status_code = 404


class RouteNotFoundError(NotFoundError):

    def __init__(self, message='Not found'):
        super().__init__(message)


class MethodNotAllowedError(ApiError):
    status_code = 405

    def __init__(self, allowed_methods: Iterable[str]):
        self.allowed_methods = tuple(sorted(allowed_methods))
        super().__init__(
            'Method not allowed. Allowed methods: ' + ', '.join(self.allowed_methods))


class PersistenceError(ApiError):
    """Raised by the repository for any failure of the underlying store"""

    status_code = 500
    public_message = 'Internal server error'


class ConflictError(PersistenceError):
    """Constraint violation (duplicate unique value, dangling reference...)"""

    status_code = 409
    public_message = 'Resource conflicts with an existing one'


class UnexpectedError(ApiError):
    status_code = 500
    public_message = 'Internal server error'


__all__ = [
    'ApiError',
    'ValidationError',
    'AuthError',
    'MissingCredential',
    'InvalidToken',
    'NotFoundError',
    'RouteNotFoundError',
    'MethodNotAllowedError',
    'PersistenceError',
    'ConflictError',
    'UnexpectedError',
]
