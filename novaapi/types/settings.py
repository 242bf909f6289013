import os
from typing import Any

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Seconds before a pass is re-run when a stage is waiting on a dependency
REQUEUE_DELAY_SECONDS = float(_getenv("REQUEUE_DELAY_SECONDS", 10.0))

#: Seconds before a pass is re-run after a stage reported an error
ERROR_RETRY_DELAY_SECONDS = float(_getenv("ERROR_RETRY_DELAY_SECONDS", 30.0))

#: Attempts at a finalizer compare-and-update before giving up for this pass
CONFLICT_RETRY_ATTEMPTS = int(_getenv("CONFLICT_RETRY_ATTEMPTS", 3))

#: Seconds before deletion is retried after losing every compare-and-update race
CONFLICT_RETRY_DELAY_SECONDS = float(_getenv("CONFLICT_RETRY_DELAY_SECONDS", 1.0))

#: Seconds between periodic (level-triggered) reconciliation requests
RECONCILE_INTERVAL_SECONDS = float(_getenv("RECONCILE_INTERVAL_SECONDS", 30.0))

#: Maximum number of concurrent kopf workers
WORKER_LIMIT = int(_getenv("WORKER_LIMIT", 2))

#: Directory holding the config templates
OPERATOR_TEMPLATES = _getenv(
    "OPERATOR_TEMPLATES", os.path.join(_PACKAGE_DIR, "templates")
)

#: Name of the shared KeystoneEndpoint resource NovaAPI instances register into
KEYSTONE_ENDPOINT_NAME = _getenv("KEYSTONE_ENDPOINT_NAME", "nova")

#: Port the nova-api service listens on
API_PORT = int(_getenv("API_PORT", 8774))


class Settings:
    """Operator settings"""

    requeue_delay_seconds: float = REQUEUE_DELAY_SECONDS
    error_retry_delay_seconds: float = ERROR_RETRY_DELAY_SECONDS
    conflict_retry_attempts: int = CONFLICT_RETRY_ATTEMPTS
    conflict_retry_delay_seconds: float = CONFLICT_RETRY_DELAY_SECONDS
    reconcile_interval_seconds: float = RECONCILE_INTERVAL_SECONDS
    worker_limit: int = WORKER_LIMIT
    operator_templates: str = OPERATOR_TEMPLATES
    keystone_endpoint_name: str = KEYSTONE_ENDPOINT_NAME
    api_port: int = API_PORT

    def __init__(
        self,
        *args,
        requeue_delay_seconds: float = None,
        error_retry_delay_seconds: float = None,
        conflict_retry_attempts: int = None,
        conflict_retry_delay_seconds: float = None,
        reconcile_interval_seconds: float = None,
        worker_limit: int = None,
        operator_templates: str = None,
        keystone_endpoint_name: str = None,
        api_port: int = None,
        **kwargs,
    ):
        if requeue_delay_seconds is not None:
            self.requeue_delay_seconds = requeue_delay_seconds

        if error_retry_delay_seconds is not None:
            self.error_retry_delay_seconds = error_retry_delay_seconds

        if conflict_retry_attempts is not None:
            self.conflict_retry_attempts = conflict_retry_attempts

        if conflict_retry_delay_seconds is not None:
            self.conflict_retry_delay_seconds = conflict_retry_delay_seconds

        if reconcile_interval_seconds is not None:
            self.reconcile_interval_seconds = reconcile_interval_seconds

        if worker_limit is not None:
            self.worker_limit = worker_limit

        if operator_templates is not None:
            self.operator_templates = operator_templates

        if keystone_endpoint_name is not None:
            self.keystone_endpoint_name = keystone_endpoint_name

        if api_port is not None:
            self.api_port = api_port
