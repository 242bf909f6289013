import json
import kubernetes_asyncio

_ALREADY_EXISTS = "alreadyexists"
_NOT_FOUND = "notfound"
_CONFLICT = "conflict"


class ReconcileError(Exception):
    """Base class for errors raised while reconciling a NovaAPI."""


class MissingInputError(ReconcileError):
    """Referenced input resources do not exist yet."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(", ".join(self.missing))


class TransientAPIError(ReconcileError):
    """The API server rejected a call in a way that may succeed later."""


class ValidationError(ReconcileError):
    """Desired state can not be realised as written."""


class OwnershipConflictError(ReconcileError):
    """A compare-and-update on a shared resource lost the race."""


def _reason(ex) -> str:
    try:
        err = json.loads(ex.body)
    except (TypeError, ValueError):
        return ""
    return (err.get("reason") or "").lower()


def already_exists_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 409 and _reason(ex) == _ALREADY_EXISTS


def not_found_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 404 or _reason(ex) == _NOT_FOUND


def conflict_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    """True when an update lost a resourceVersion race."""
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 409 and _reason(ex) != _ALREADY_EXISTS


def describe_api_exception(ex: kubernetes_asyncio.client.ApiException) -> str:
    error_msg = f"Kubernetes API error ({ex.status}): {ex.reason}"
    try:
        if ex.body:
            body = json.loads(ex.body)
            if "message" in body:
                error_msg = f"{error_msg} - {body['message']}"
    except (json.JSONDecodeError, AttributeError, TypeError):
        pass
    return error_msg

