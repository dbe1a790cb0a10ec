"""Data models for the application."""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

Record = Dict[str, Any]


class ActionType(str, enum.Enum):
    """State transitions an admin can trigger on a resource item."""

    APPROVE = "approve"
    REJECT = "reject"
    BLOCK = "block"
    UNBLOCK = "unblock"
    VERIFY = "verify"
    UNVERIFY = "unverify"
    DELETE = "delete"
    RESOLVE = "resolve"
    CLOSE = "close"
    PROCESSING = "processing"


# Actions that must carry a non-empty reason before anything is sent
REASON_REQUIRED_ACTIONS = frozenset({ActionType.REJECT, ActionType.BLOCK})


class ErrorKind(str, enum.Enum):
    NETWORK = "network"
    AUTH_FAILED = "auth-failed"
    NOT_FOUND = "not-found"
    UNEXPECTED_HTML = "unexpected-html"
    API = "api"
    VALIDATION = "validation"
    SHAPE = "shape"


@dataclass
class ApiResponse:
    """Uniform envelope every service call resolves to."""

    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    status: Optional[int] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None, status: Optional[int] = None) -> "ApiResponse":
        return cls(success=True, data=data, message=message, status=status)

    @classmethod
    def fail(
        cls,
        error: str,
        error_kind: ErrorKind = ErrorKind.API,
        status: Optional[int] = None,
    ) -> "ApiResponse":
        return cls(success=False, error=error, error_kind=error_kind, status=status)


@dataclass
class Session:
    """Model for the signed-in staff session."""

    token: str
    user: Optional[Record] = None
    remember_me: bool = False


@dataclass
class ListQuery:
    """Model for the query state that drives the next list fetch."""

    page: int = 1
    page_size: int = 10
    search: str = ""
    filters: Dict[str, str] = field(default_factory=dict)
    sort: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": self.page, "page_size": self.page_size}
        if self.search:
            params["search"] = self.search
        if self.sort:
            params["ordering"] = self.sort
        params.update(self.filters)
        return params


@dataclass
class ListResult(Generic[T]):
    """Model for one decoded page of a list endpoint."""

    items: List[T]
    total_count: int
    next_page: Optional[str] = None
    previous_page: Optional[str] = None


@dataclass
class ActionRequest:
    """Model for a single state transition sent to the backend."""

    entity_id: Any
    action_type: ActionType
    reason: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AdminAction:
    """Model for a mutation performed from the console, posted to the admin log."""

    admin_id: str
    admin_username: str
    action_type: str
    resource: str
    target_id: str
    details: Optional[str]
    performed_at: int
