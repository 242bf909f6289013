from typing import Dict, Iterable, List, NamedTuple, Optional
from novaapi.utils.helpers import now

STATUS_TRUE = "True"
STATUS_FALSE = "False"
STATUS_UNKNOWN = "Unknown"
STATUSES = (STATUS_TRUE, STATUS_FALSE, STATUS_UNKNOWN)

REASON_READY = "Ready"
REASON_REQUESTED = "Requested"
REASON_ERROR = "Error"
REASON_INIT = "Init"

READY = "Ready"
INPUT_READY = "InputReady"
SERVICE_CONFIG_READY = "ServiceConfigReady"
DEPLOYMENT_READY = "DeploymentReady"
EXPOSE_SERVICE_READY = "ExposeServiceReady"
NETWORK_ATTACHMENTS_READY = "NetworkAttachmentsReady"
KEYSTONE_ENDPOINT_READY = "KeystoneEndpointReady"

SUBORDINATE_KINDS = (
    INPUT_READY,
    SERVICE_CONFIG_READY,
    DEPLOYMENT_READY,
    EXPOSE_SERVICE_READY,
    NETWORK_ATTACHMENTS_READY,
    KEYSTONE_ENDPOINT_READY,
)
KINDS = (READY,) + SUBORDINATE_KINDS

# kind -> (ready message, requested message, error message prefix)
MESSAGES = {
    INPUT_READY: (
        "Input data complete",
        "Input data resources missing: {}",
        "Input data error occurred {}",
    ),
    SERVICE_CONFIG_READY: (
        "Service config create completed",
        "Service config create in progress",
        "Service config create error occurred {}",
    ),
    DEPLOYMENT_READY: (
        "Deployment completed",
        "Deployment in progress",
        "Deployment error occurred {}",
    ),
    EXPOSE_SERVICE_READY: (
        "Exposing service completed",
        "Exposing service in progress",
        "Exposing service error occurred {}",
    ),
    NETWORK_ATTACHMENTS_READY: (
        "NetworkAttachments completed",
        "NetworkAttachment resources missing: {}",
        "NetworkAttachments error occured {}",
    ),
    KEYSTONE_ENDPOINT_READY: (
        "KeystoneEndpoint completed",
        "KeystoneEndpoint not yet ready",
        "KeystoneEndpoint error occured {}",
    ),
}

READY_MESSAGE = "Setup complete"
READY_INIT_MESSAGE = "Setup started"


class Condition(NamedTuple):
    """A single named tri-state health signal."""

    type: str
    status: str
    reason: str
    message: str
    last_transition_time: Optional[str] = None

    def as_dict(self) -> Dict[str, str]:
        return {
            "type": self.type,
            "status": self.status,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": self.last_transition_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "Condition":
        return cls(
            type=data["type"],
            status=data.get("status", STATUS_UNKNOWN),
            reason=data.get("reason", ""),
            message=data.get("message", ""),
            last_transition_time=data.get("lastTransitionTime"),
        )


def _check_kind(kind: str):
    if kind not in KINDS:
        raise ValueError(f"Unknown condition kind: {kind}")


class ConditionSet:
    """The condition set of one NovaAPI, keyed by kind.

    Conditions recorded by an earlier pass are only used to carry over
    `lastTransitionTime` for kinds whose status did not change. A kind
    which has not been set in the current pass counts as missing.
    """

    _conditions: Dict[str, Condition]
    _previous: Dict[str, Condition]

    def __init__(self, previous: Iterable[Condition] = None) -> None:
        self._conditions = {}
        self._previous = {c.type: c for c in previous or []}

    @classmethod
    def from_list(cls, conditions: List[Dict[str, str]]) -> "ConditionSet":
        """Start a new pass from the conditions stored in a status."""
        return cls(
            Condition.from_dict(c)
            for c in conditions or []
            if c.get("type") in KINDS
        )

    def set(self, kind: str, status: str, reason: str, message: str) -> Condition:
        """Upsert a condition.

        The transition time moves only when status differs from the one the
        previous pass recorded, not from one set earlier in this pass.
        """
        _check_kind(kind)
        if status not in STATUSES:
            raise ValueError(f"Invalid condition status: {status}")
        old = self._previous.get(kind) or self._conditions.get(kind)
        if old is not None and old.status == status and old.last_transition_time:
            ltt = old.last_transition_time
        else:
            ltt = now()
        cond = Condition(kind, status, reason, message, ltt)
        self._conditions[kind] = cond
        return cond

    def mark_true(self, kind: str) -> Condition:
        return self.set(kind, STATUS_TRUE, REASON_READY, MESSAGES[kind][0])

    def mark_requested(self, kind: str, detail: str = None) -> Condition:
        message = MESSAGES[kind][1]
        if "{}" in message:
            message = message.format(detail or "")
        return self.set(kind, STATUS_FALSE, REASON_REQUESTED, message)

    def mark_error(self, kind: str, detail) -> Condition:
        return self.set(
            kind, STATUS_FALSE, REASON_ERROR, MESSAGES[kind][2].format(detail)
        )

    def get(self, kind: str) -> Optional[Condition]:
        _check_kind(kind)
        return self._conditions.get(kind)

    def previous(self, kind: str) -> Optional[Condition]:
        """The condition of `kind` as recorded by the previous pass."""
        _check_kind(kind)
        return self._previous.get(kind)

    def is_true(self, kind: str) -> bool:
        cond = self.get(kind)
        return cond is not None and cond.status == STATUS_TRUE

    def aggregate(self) -> Condition:
        """Derive and store `Ready` from the subordinate conditions."""
        subordinates = [self._conditions.get(kind) for kind in SUBORDINATE_KINDS]
        if any(c is None or c.status == STATUS_UNKNOWN for c in subordinates):
            return self.set(READY, STATUS_UNKNOWN, REASON_INIT, READY_INIT_MESSAGE)
        for cond in subordinates:
            if cond.status == STATUS_FALSE:
                return self.set(READY, STATUS_FALSE, cond.reason, cond.message)
        return self.set(READY, STATUS_TRUE, REASON_READY, READY_MESSAGE)

    def same_state(self, other: Iterable[Condition]) -> bool:
        """Equality by the set of (type, status, reason, message).

        `other` may be another ConditionSet or any iterable of conditions.
        """
        def key(cs):
            return {(c.type, c.status, c.reason, c.message) for c in cs}

        return key(self) == key(other)

    def __iter__(self):
        """Conditions in display order, `Ready` first then insertion order."""
        if READY in self._conditions:
            yield self._conditions[READY]
        for kind, cond in self._conditions.items():
            if kind != READY:
                yield cond

    def __len__(self) -> int:
        return len(self._conditions)

    def __contains__(self, kind: str) -> bool:
        return kind in self._conditions

    def as_list(self) -> List[Dict[str, str]]:
        return [c.as_dict() for c in self]
