import enum


class ErrorKind(str, enum.Enum):
    """Failure categories reported by service results.

    Used by the blueprints to pick the HTTP status code for a failed operation.
    """
    AUTHENTICATION = "authentication"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    STORE = "store"
    VALIDATION = "validation"


class TokenType(str, enum.Enum):
    """JWT token types issued by the auth service."""
    ACCESS = "access"
    REFRESH = "refresh"
