import configparser
import copy
import logging
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional
from kubernetes_asyncio.client import ApiException
from novaapi.common.models.conditions import (
    Condition,
    ConditionSet,
    READY,
    INPUT_READY,
    SERVICE_CONFIG_READY,
    DEPLOYMENT_READY,
    EXPOSE_SERVICE_READY,
    NETWORK_ATTACHMENTS_READY,
    KEYSTONE_ENDPOINT_READY,
    STATUS_TRUE,
)
from novaapi.reconcile.finalizers import FinalizerCoordinator, retry_on_conflict
from novaapi.reconcile.hashing import HashTracker, INPUT_HASH
from novaapi.reconcile.interfaces import Clients
from novaapi.reconcile.network import NetworkAttachmentTracker
from novaapi.reconcile.stages import (
    Stage,
    StageOutcome,
    StageResult,
    topological_order,
    unmet_dependencies,
)
from novaapi.types.models.external_endpoint import (
    ENDPOINT_PUBLIC,
    LoadBalanced,
    resolve_exposures,
)
from novaapi.types.models.novaapi_status import NovaAPIStatus
from novaapi.types.settings import Settings
from novaapi.utils.errors import (
    MissingInputError,
    OwnershipConflictError,
    TransientAPIError,
    ValidationError,
    describe_api_exception,
)

log = logging.getLogger(__name__)

TRANSPORT_URL_FIELD = "transport_url"

VALIDATE_INPUTS = "validate_inputs"
RENDER_CONFIG = "render_config"
ENSURE_WORKLOAD = "ensure_workload"
EXPOSE_SERVICE = "expose_service"
REGISTER_ENDPOINT = "register_endpoint"
TRACK_NETWORK_ATTACHMENTS = "track_network_attachments"


class PassResult(NamedTuple):
    """Outcome of a single reconciliation pass."""

    outcomes: Dict[str, StageOutcome]
    status: NovaAPIStatus
    requeue_after: Optional[float] = None
    deleted: bool = False

    @property
    def succeeded(self) -> bool:
        return self.requeue_after is None


def validate_override_text(text: str) -> None:
    """Check that free-form override text parses as an INI document.

    Text which does not start with a section header belongs to `[DEFAULT]`.
    """
    if not text or not text.strip():
        return
    parser = configparser.ConfigParser(strict=False, interpolation=None)
    try:
        try:
            parser.read_string(text, source="customServiceConfig")
        except configparser.MissingSectionHeaderError:
            parser.read_string("[DEFAULT]\n" + text, source="customServiceConfig")
    except configparser.Error as ex:
        raise ValidationError(f"customServiceConfig is not valid: {ex}") from ex


class ResourceOrchestrator:
    """Drives one NovaAPI towards its desired state.

    Every call to `run_pass` executes the reconciliation stages in dependency
    order, recording their outcome as conditions on a copy of the given
    status. Stages never wait: one that can not proceed ends with an outcome
    asking to be run again later.
    """

    def __init__(
        self,
        resource,
        clients: Clients,
        settings: Settings,
        logger=None,
    ):
        self.resource = resource
        self.clients = clients
        self.settings = settings
        self.logger = logger or log
        self.finalizers = FinalizerCoordinator(
            clients.catalog, clients.workloads, settings, logger=self.logger
        )
        self.stages = topological_order(
            [
                Stage(VALIDATE_INPUTS, self.validate_inputs, {}, INPUT_READY),
                Stage(
                    RENDER_CONFIG,
                    self.render_config,
                    {VALIDATE_INPUTS: StageOutcome.SUCCEEDED},
                    SERVICE_CONFIG_READY,
                ),
                Stage(
                    ENSURE_WORKLOAD,
                    self.ensure_workload,
                    {RENDER_CONFIG: StageOutcome.SUCCEEDED},
                    DEPLOYMENT_READY,
                ),
                Stage(
                    EXPOSE_SERVICE,
                    self.expose_service,
                    {ENSURE_WORKLOAD: StageOutcome.PROGRESSING},
                    EXPOSE_SERVICE_READY,
                ),
                Stage(
                    REGISTER_ENDPOINT,
                    self.register_endpoint,
                    {EXPOSE_SERVICE: StageOutcome.SUCCEEDED},
                    KEYSTONE_ENDPOINT_READY,
                ),
                Stage(
                    TRACK_NETWORK_ATTACHMENTS,
                    self.track_network_attachments,
                    {ENSURE_WORKLOAD: StageOutcome.SUCCEEDED},
                    NETWORK_ATTACHMENTS_READY,
                ),
            ]
        )

    @property
    def spec(self):
        return self.resource.spec

    @property
    def namespace(self) -> str:
        return self.resource.namespace

    async def run_pass(
        self, status: NovaAPIStatus, deleting: Callable[[], Awaitable[bool]] = None
    ) -> PassResult:
        """Run every stage whose dependencies are met.

        Args:
            status: Status recorded by the previous pass. Not modified.
            deleting: Optional coroutine function awaited before each stage.
                Once it returns True the remaining stages are skipped and the
                resource is finalized instead.
        """
        self.status = copy.deepcopy(status)
        self.conditions = ConditionSet.from_list(self.status.conditions)
        self._input_digest = None
        self._input_changed = True
        self._secret_values = {}
        outcomes = {}

        for stage in self.stages:
            if deleting is not None and await deleting():
                self.logger.info(
                    f"{self.resource.name} is being deleted, skipping {stage.name}."
                )
                return await self.finalize(outcomes)

            unmet = unmet_dependencies(stage, outcomes)
            if unmet:
                self.logger.debug(f"Skipping {stage.name}, waiting on {unmet}.")
                continue

            result = await self._run_stage(stage)
            outcomes[stage.name] = result.outcome
            self.conditions.aggregate()
            self.logger.info(f"Stage {stage.name}: {result.outcome.name}")

        self.conditions.aggregate()
        previous = [Condition.from_dict(c) for c in status.conditions or []]
        if not self.conditions.same_state(previous):
            ready = self.conditions.get(READY)
            self.logger.info(
                f"{self.resource.name} conditions changed, Ready={ready.status}: "
                f"{ready.message}"
            )
        self.status.conditions = self.conditions.as_list()
        self.status.observed_generation = self.resource.generation
        requeue_after = self._requeue_after(outcomes)
        if requeue_after is not None:
            self.logger.warning(
                f"Reconciliation of {self.resource.name} incomplete, "
                f"running again in {requeue_after}s."
            )
        return PassResult(outcomes, self.status, requeue_after)

    async def finalize(self, outcomes: Dict[str, StageOutcome] = None) -> PassResult:
        """Release the shared endpoint catalog entry, then the owned children."""
        result = await self.finalizers.finalize(
            self.resource.owner_token, self.resource.name
        )
        if result.done:
            requeue_after = None
        elif result.conflict:
            requeue_after = self.settings.conflict_retry_delay_seconds
        else:
            requeue_after = self.settings.error_retry_delay_seconds
        status = getattr(self, "status", None)
        return PassResult(outcomes or {}, status, requeue_after, deleted=result.done)

    async def _run_stage(self, stage: Stage) -> StageResult:
        """Run a stage, turning any error into an outcome and a condition."""
        try:
            return await stage.run()
        except ValidationError as ex:
            self.conditions.mark_error(stage.condition, str(ex))
            return StageResult(StageOutcome.TERMINAL, str(ex))
        except MissingInputError as ex:
            self.conditions.mark_requested(stage.condition, str(ex))
            return StageResult(StageOutcome.REQUEUED, str(ex))
        except ApiException as ex:
            detail = describe_api_exception(ex)
            self.logger.warning(f"Stage {stage.name} failed: {detail}")
            self.conditions.mark_error(stage.condition, detail)
            return StageResult(StageOutcome.FAILED, detail)
        except (TransientAPIError, OwnershipConflictError) as ex:
            self.logger.warning(f"Stage {stage.name} failed: {ex}")
            self.conditions.mark_error(stage.condition, str(ex))
            return StageResult(StageOutcome.FAILED, str(ex))
        except Exception as ex:
            self.logger.exception(f"Unexpected error in stage {stage.name}.")
            self.conditions.mark_error(stage.condition, str(ex))
            return StageResult(StageOutcome.FAILED, str(ex))

    def _requeue_after(self, outcomes: Dict[str, StageOutcome]) -> Optional[float]:
        values = [outcomes.get(stage.name) for stage in self.stages]
        if any(v in (StageOutcome.FAILED, StageOutcome.TERMINAL) for v in values):
            return self.settings.error_retry_delay_seconds
        if any(v is not StageOutcome.SUCCEEDED for v in values):
            return self.settings.requeue_delay_seconds
        return None

    async def validate_inputs(self) -> StageResult:
        secrets = self.clients.secrets
        selectors = self.spec.password_selectors
        missing = []

        service_fields, found = await secrets.get(self.namespace, self.spec.secret)
        if not found:
            missing.append(f"secret/{self.spec.secret}")

        transport_fields = {}
        transport_secret = self.spec.api_message_bus_secret_name
        if transport_secret:
            transport_fields, found = await secrets.get(self.namespace, transport_secret)
            if not found:
                missing.append(f"secret/{transport_secret}")

        if missing:
            raise MissingInputError(missing)

        watched = [
            (field, service_fields.get(field)) for field in selectors.fields()
        ]
        missing_fields = [
            f"{field} in secret/{self.spec.secret}"
            for field, value in watched
            if value is None
        ]
        if transport_secret:
            transport_url = transport_fields.get(TRANSPORT_URL_FIELD)
            if transport_url is None:
                missing_fields.append(
                    f"{TRANSPORT_URL_FIELD} in secret/{transport_secret}"
                )
            watched.append((TRANSPORT_URL_FIELD, transport_url))
        if missing_fields:
            detail = f"missing field(s): {', '.join(missing_fields)}"
            self.conditions.mark_error(INPUT_READY, detail)
            return StageResult(StageOutcome.FAILED, detail)

        self._secret_values = {
            field: value.decode() if isinstance(value, bytes) else value
            for field, value in watched
        }
        digest = HashTracker.fingerprint(
            HashTracker.input_bytes(watched, self.resource.render_inputs())
        )
        self._input_digest = digest
        self._input_changed = HashTracker.has_changed(INPUT_HASH, digest, self.status)
        HashTracker.record(INPUT_HASH, digest, self.status)
        self.conditions.mark_true(INPUT_READY)
        return StageResult(StageOutcome.SUCCEEDED)

    async def render_config(self) -> StageResult:
        previous = self.conditions.previous(SERVICE_CONFIG_READY)
        if (
            not self._input_changed
            and previous is not None
            and previous.status == STATUS_TRUE
        ):
            self.logger.debug("Inputs unchanged, config is up to date.")
            self.conditions.mark_true(SERVICE_CONFIG_READY)
            return StageResult(StageOutcome.SUCCEEDED)

        validate_override_text(self.spec.custom_service_config)
        documents = await self.clients.renderer.render(
            self.resource.TEMPLATE_SET,
            self.spec.custom_service_config,
            self.resource.prepare_template_params(self._secret_values),
            self.spec.default_config_overwrite,
        )
        config_map = self.resource.prepare_config_map(documents, self._input_digest)
        await self.clients.workloads.ensure_config_map(config_map)
        self.logger.info(f"Published config documents {sorted(documents)}.")
        self.conditions.mark_true(SERVICE_CONFIG_READY)
        return StageResult(StageOutcome.SUCCEEDED)

    async def ensure_workload(self) -> StageResult:
        missing = []
        for name in self.spec.network_attachments:
            if not await self.clients.network.network_attachment_exists(name):
                missing.append(name)
        if missing:
            detail = ", ".join(missing)
            self.conditions.mark_requested(NETWORK_ATTACHMENTS_READY, detail)
            return StageResult(StageOutcome.REQUEUED, detail)

        stateful_set = self.resource.prepare_stateful_set(self._input_digest)
        ready_count = await self.clients.workloads.ensure_stateful_workload(
            stateful_set
        )
        self.status.ready_count = ready_count
        if ready_count >= 1 or self.spec.replicas == 0:
            self.conditions.mark_true(DEPLOYMENT_READY)
            return StageResult(StageOutcome.SUCCEEDED)
        self.conditions.mark_requested(DEPLOYMENT_READY)
        return StageResult(StageOutcome.PROGRESSING)

    async def expose_service(self) -> StageResult:
        network = self.clients.network
        endpoints = {}
        pending = []
        for endpoint, exposure in resolve_exposures(
            self.spec.external_endpoints
        ).items():
            await network.ensure_service(self.resource.prepare_service(exposure))
            if isinstance(exposure, LoadBalanced):
                await network.delete_route(self.resource.route_name(endpoint))
                endpoints[endpoint] = self.resource.internal_url(endpoint)
                continue
            host = await network.ensure_route(self.resource.prepare_route(endpoint))
            if endpoint != ENDPOINT_PUBLIC:
                endpoints[endpoint] = self.resource.internal_url(endpoint)
            elif host:
                endpoints[endpoint] = self.resource.route_url(host)
            else:
                # No host admitted yet; a public URL is never registered without one
                pending.append(endpoint)

        self.status.api_endpoints = endpoints
        if pending:
            self.conditions.mark_requested(EXPOSE_SERVICE_READY)
            return StageResult(StageOutcome.PROGRESSING, ", ".join(pending))
        self.conditions.mark_true(EXPOSE_SERVICE_READY)
        return StageResult(StageOutcome.SUCCEEDED)

    async def register_endpoint(self) -> StageResult:
        endpoints = dict(self.status.api_endpoints)
        registration = await retry_on_conflict(
            lambda: self.clients.catalog.ensure_endpoint_registration(
                self.resource.owner_token, endpoints
            ),
            self.settings.conflict_retry_attempts,
            self.logger,
        )
        if not registration.ready:
            self.conditions.mark_requested(KEYSTONE_ENDPOINT_READY)
            return StageResult(StageOutcome.PROGRESSING)
        if registration.service_id:
            self.status.service_id = registration.service_id
        self.conditions.mark_true(KEYSTONE_ENDPOINT_READY)
        return StageResult(StageOutcome.SUCCEEDED)

    async def track_network_attachments(self) -> StageResult:
        attachments: List[str] = self.spec.network_attachments
        if not attachments or self.spec.replicas == 0:
            self.status.network_attachments = {}
            self.conditions.mark_true(NETWORK_ATTACHMENTS_READY)
            return StageResult(StageOutcome.SUCCEEDED)

        pod_ips = await self.clients.pods.list_pod_interface_ips(
            self.resource.pod_selector
        )
        result = NetworkAttachmentTracker.evaluate(
            self.namespace, attachments, pod_ips, self.status.ready_count
        )
        self.status.network_attachments = result.network_attachments
        if not result.ready:
            self.conditions.mark_error(NETWORK_ATTACHMENTS_READY, result.message)
            return StageResult(StageOutcome.FAILED, result.message)
        self.conditions.mark_true(NETWORK_ATTACHMENTS_READY)
        return StageResult(StageOutcome.SUCCEEDED)
