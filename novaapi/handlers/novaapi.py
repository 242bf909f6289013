import kopf
import time
import logging
from logging import Logger
from typing import Dict, Optional
from marshmallow import ValidationError as SchemaValidationError
from novaapi.common.models.conditions import ConditionSet, INPUT_READY
from novaapi.common.models.labels import Labels
from novaapi.reconcile.orchestrator import PassResult, ResourceOrchestrator
from novaapi.reconcile.queue import ReconcileQueue, identity
from novaapi.resources import NovaAPI, make_clients
from novaapi.types.models import NovaAPISpec, NovaAPIStatus
from novaapi.types.schemas import NovaAPISpecSchema, NovaAPIStatusSchema
from novaapi.types.settings import RECONCILE_INTERVAL_SECONDS, Settings

KIND = "NovaAPI"

# Pending reconciliation requests keyed by "<namespace>/<name>"
reconciliation_queue = ReconcileQueue()

# Status maps the core may drop keys from. kopf sends status as a JSON merge
# patch, so dropped keys have to be sent as null to be removed.
STATUS_MAPS = ("hash", "apiEndpoints", "networkAttachments")


class TimerLogFilter(logging.Filter):
    def filter(self, record):
        """Timer logs are noisy so we filter them out."""
        return "Timer " not in record.getMessage()


kopf_logger = logging.getLogger("kopf.objects")
kopf_logger.addFilter(TimerLogFilter())


def get_settings() -> Settings:
    return NovaAPI.conf if getattr(NovaAPI, "conf", None) else Settings()


async def request_reconciliation(name: str, namespace: str, **kwargs):
    """Request reconciliation for a NovaAPI; duplicate requests are merged."""
    reconciliation_queue.request(identity(namespace, name))


def build_orchestrator(
    name: str, namespace: str, spec_model: NovaAPISpec, meta, logger: Logger
) -> ResourceOrchestrator:
    settings = get_settings()
    nova = NovaAPI.from_spec(
        name,
        namespace,
        spec_model,
        uid=meta.get("uid"),
        generation=meta.get("generation"),
        settings=settings,
        logger=logger,
    )
    clients = make_clients(nova, NovaAPI.shared_api_client, NovaAPI.renderer, logger)
    return ResourceOrchestrator(nova, clients, settings, logger=logger)


def status_patch(previous: Optional[Dict], current: Dict) -> Dict:
    """Merge patch body turning the `previous` status into `current`."""
    body = dict(current)
    for field in STATUS_MAPS:
        new = dict(current.get(field) or {})
        stale = set((previous or {}).get(field) or {}) - set(new)
        if stale:
            new.update({key: None for key in stale})
            body[field] = new
    return body


def on_spec_error(error: SchemaValidationError, meta, status, patch):
    """Record a desired state that does not pass schema validation."""
    conditions = ConditionSet.from_list((status or {}).get("conditions"))
    conditions.mark_error(INPUT_READY, f"invalid spec: {error.messages}")
    conditions.aggregate()
    patch.status["conditions"] = conditions.as_list()
    patch.status["observedGeneration"] = meta.get("generation")


async def reconcile(
    name, namespace, spec, meta, status, patch, logger: Logger, trigger_source: str = "manual", **kwargs
) -> Optional[PassResult]:
    """Run one reconciliation pass and stage its status into `patch`."""
    try:
        spec_model: NovaAPISpec = NovaAPISpecSchema.load_lenient(spec)
    except SchemaValidationError as e:
        logger.error(f"Invalid {KIND} spec: {e.messages}")
        on_spec_error(e, meta, status, patch)
        return None

    logger.debug(f"Reconciling {KIND}/{name} in {namespace} ({trigger_source}).")
    orchestrator = build_orchestrator(name, namespace, spec_model, meta, logger)
    observed: NovaAPIStatus = NovaAPIStatusSchema.load_lenient(status)

    async def deleting() -> bool:
        if meta.get("deletionTimestamp"):
            return True
        return await orchestrator.clients.workloads.owner_deleting()

    result = await orchestrator.run_pass(observed, deleting=deleting)
    if result.status is not None and not result.deleted:
        current = NovaAPIStatusSchema().dump(result.status)
        patch.status.update(status_patch(status, current))
    return result


def raise_for_requeue(result: Optional[PassResult]):
    """Ask kopf to run the handler again when the pass did not converge."""
    if result is None:
        raise kopf.PermanentError(f"{KIND} spec is invalid.")
    if result.requeue_after is not None:
        raise kopf.TemporaryError(
            f"{KIND} not ready yet, retrying in {result.requeue_after}s",
            delay=result.requeue_after,
        )


@kopf.on.resume(kind=KIND)
@kopf.on.create(kind=KIND)
@kopf.on.update(kind=KIND, field="spec")
async def on_change(
    name, namespace, spec, meta, status, patch, logger: Logger, **kwargs
):
    """Reconcile a NovaAPI whenever its desired state changes."""
    result = await reconcile(
        name, namespace, spec, meta, status, patch, logger, trigger_source="change"
    )
    raise_for_requeue(result)


@kopf.on.delete(kind=KIND)
async def on_delete(name, namespace, spec, meta, logger: Logger, **kwargs):
    """Release the shared endpoint catalog entry and delete owned children.

    Deletion is blocked by raising until both steps succeeded.
    """
    try:
        spec_model: NovaAPISpec = NovaAPISpecSchema.load_lenient(spec)
    except SchemaValidationError as e:
        logger.warning(f"Finalizing {KIND} with invalid spec: {e.messages}")
        spec_model = None
    orchestrator = build_orchestrator(name, namespace, spec_model, meta, logger)
    result = await orchestrator.finalize()
    if not result.deleted:
        raise kopf.TemporaryError(
            f"Finalizing {KIND}/{name} failed, retrying.",
            delay=result.requeue_after,
        )
    reconciliation_queue.forget(identity(namespace, name))


@kopf.timer(KIND, initial_delay=3.0, interval=1.5)
async def process_reconciliation_requests(
    name, namespace, spec, meta, status, patch, logger: Logger, stopped, **kwargs
):
    """Process reconciliation requests from the queue.

    Processes each request exactly once, even if it was
    requested multiple times while processing another request.
    """
    if stopped or meta.get("deletionTimestamp"):
        return
    if not reconciliation_queue.take(identity(namespace, name)):
        return
    start_time = time.time()
    try:
        await reconcile(
            name, namespace, spec, meta, status, patch, logger, trigger_source="queue"
        )
    except Exception as e:
        logger.exception(f"Error processing reconciliation request: {e}")
    logger.info(
        f"Reconciliation for {name} completed in {time.time() - start_time:.2f} seconds"
    )


@kopf.timer(KIND, initial_delay=5.0, interval=RECONCILE_INTERVAL_SECONDS, backoff=10.0)
async def periodic_reconciliation(name, namespace, **kwargs):
    """Level-triggered resync of every NovaAPI."""
    await request_reconciliation(name, namespace)


@kopf.index(KIND)
def novaapi_secrets(name, namespace, spec, **kwargs) -> Dict:
    """Index NovaAPIs by the secrets they read their inputs from."""
    secrets = [spec.get("secret"), spec.get("apiMessageBusSecretName")]
    return {(namespace, secret): name for secret in secrets if secret}


@kopf.on.event("v1", "secrets")
async def on_secret_event(name, namespace, novaapi_secrets: kopf.Index, **kwargs):
    """Reconcile the NovaAPIs reading from a secret that changed."""
    for owner in novaapi_secrets.get((namespace, name), []):
        await request_reconciliation(owner, namespace)


@kopf.on.event("v1", "pods", labels={Labels.NOVA_KIND_LABEL: KIND})
async def on_pod_event(namespace, labels, **kwargs):
    """Pods report their network status asynchronously, so their changes
    feed back into the owning NovaAPI."""
    owner = labels.get(Labels.NOVA_OWNER_LABEL)
    if owner:
        await request_reconciliation(owner, namespace)
