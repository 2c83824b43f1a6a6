"""Exception taxonomy for the tree census backend."""


class ValidationError(Exception):
    """Raised when input validation fails."""
    pass


class NotFoundError(Exception):
    """Raised when an addressed entity does not exist."""
    pass


class RecordNotFoundError(NotFoundError):
    """Raised by the record store when no tree has the given unique id."""

    def __init__(self, unique_id):
        super().__init__(f"Tree {unique_id} not found")
        self.unique_id = unique_id


class ConflictError(Exception):
    """Raised when a write collides with existing state."""
    pass


class DuplicateKeyError(ConflictError):
    """Raised by the record store when an insert collides on a unique key."""

    def __init__(self, unique_id):
        super().__init__(f"Tree {unique_id} already exists")
        self.unique_id = unique_id


class StoreError(Exception):
    """Raised when the persistence engine fails."""
    pass


class AuthenticationError(Exception):
    """Raised when a credential is missing or cannot be verified."""
    pass


class TokenExpiredError(AuthenticationError):
    """Raised when a JWT has expired."""
    pass


class InvalidTokenError(AuthenticationError):
    """Raised when a JWT is malformed or its signature does not verify."""
    pass
