"""Structured result returned by service operations."""
from dataclasses import dataclass, field
from typing import Any, List, Optional
from arbor_shared.enums import ErrorKind


@dataclass
class ServiceResult:
    """Outcome of a service call. Services never raise across their boundary."""
    success: bool
    message: str
    data: Any = None
    errors: List[Any] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    total: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None

    @classmethod
    def ok(cls, message, data=None, **kwargs):
        return cls(success=True, message=message, data=data, **kwargs)

    @classmethod
    def fail(cls, message, error_kind, errors=None):
        return cls(success=False, message=message, error_kind=error_kind, errors=errors or [])

    def to_dict(self, serializer=None):
        """Build the JSON body for this result.

        Args:
            serializer: Optional callable applied to ``data`` (or to each item
                when ``data`` is a list)
        """
        body = {'success': self.success, 'message': self.message}
        if self.data is not None:
            if serializer is None:
                body['data'] = self.data
            elif isinstance(self.data, list):
                body['data'] = [serializer(item) for item in self.data]
            else:
                body['data'] = serializer(self.data)
        if self.errors:
            body['data'] = {'errors': [
                e.model_dump() if hasattr(e, 'model_dump') else e for e in self.errors
            ]}
        for key in ('total', 'page', 'limit'):
            value = getattr(self, key)
            if value is not None:
                body[key] = value
        return body
