import logging
from logging import Logger
from typing import Dict, List, Optional
from kubernetes_asyncio.client import (
    V1ConfigMap,
    V1ConfigMapVolumeSource,
    V1Container,
    V1ContainerPort,
    V1EmptyDirVolumeSource,
    V1EnvVar,
    V1ExecAction,
    V1HTTPGetAction,
    V1KeyToPath,
    V1LabelSelector,
    V1ObjectMeta,
    V1OwnerReference,
    V1PodSpec,
    V1PodTemplateSpec,
    V1Probe,
    V1ResourceRequirements,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1StatefulSet,
    V1StatefulSetSpec,
    V1Volume,
    V1VolumeMount,
)
from kubernetes_asyncio.client.api_client import ApiClient
from novaapi.common.models.labels import Labels
from novaapi.reconcile.interfaces import ConfigRenderer
from novaapi.reconcile.network import networks_annotation
from novaapi.resources.base import BaseResource
from novaapi.types.models.external_endpoint import Exposure, LoadBalanced
from novaapi.types.models.novaapi_resources import NovaAPIResources
from novaapi.types.models.novaapi_spec import NovaAPISpec
from novaapi.types.models.probe import Probe
from novaapi.types.settings import Settings


class NovaAPI(BaseResource):
    """NovaAPI kubernetes resource. Builds the desired state of its children."""

    logger: Logger
    conf: Settings
    spec: NovaAPISpec

    KIND = "NovaAPI"
    GROUP_NAME = "nova.openstack.org"
    GROUP_VERSION = "v1beta1"
    PLURAL_NAME = "novaapis"
    COMPONENT_TYPE = "nova-api"
    CONTAINER_NAME = "nova-api"
    LOG_CONTAINER_NAME = "nova-api-log"
    ENDPOINT_LABEL = "nova.openstack.org/endpoint"
    INPUT_HASH_ANNOTATION = "nova.openstack.org/input-hash"
    TEMPLATE_SET = "novaapi"

    API_PATH = "/v2.1"
    CONFIG_DIR = "/etc/nova/nova.conf.d"
    BASE_CONFIG = "01-nova.conf"
    OVERRIDE_CONFIG = "03-nova-override.conf"
    CONFIG_VOLUME = "config-data"
    CUSTOM_CONFIG_VOLUME = "config-data-custom"
    LOG_VOLUME = "logs"
    LOG_DIR = "/var/log/nova"
    LOG_FILE = "nova-api.log"
    SERVICE_COMMAND = ["/usr/bin/nova-api", "--config-dir", CONFIG_DIR]
    DEBUG_COMMAND = ["/bin/sleep", "infinity"]
    LOG_COMMAND = [
        "/bin/sh",
        "-c",
        f"/usr/bin/tail -n+1 -F {LOG_DIR}/{LOG_FILE} 2>/dev/null",
    ]

    METALLB_ADDRESS_POOL = "metallb.universe.tf/address-pool"
    METALLB_ALLOW_SHARED_IP = "metallb.universe.tf/allow-shared-ip"
    METALLB_LOADBALANCER_IPS = "metallb.universe.tf/loadBalancerIPs"

    ROUTE_GROUP = "route.openshift.io"
    ROUTE_VERSION = "v1"
    ROUTE_PLURAL = "routes"

    KEYSTONE_GROUP = "keystone.openstack.org"
    KEYSTONE_VERSION = "v1beta1"
    KEYSTONE_ENDPOINT_KIND = "KeystoneEndpoint"
    KEYSTONE_ENDPOINT_PLURAL = "keystoneendpoints"

    NAD_GROUP = "k8s.cni.cncf.io"
    NAD_VERSION = "v1"
    NAD_PLURAL = "network-attachment-definitions"

    uid: Optional[str] = None
    generation: Optional[int] = None

    # Set at operator startup
    shared_api_client: ApiClient = None
    renderer: ConfigRenderer = None

    def __init__(
        self,
        name: str,
        namespace: str,
        labels: Optional[Dict[str, str]] = None,
    ):
        _labels = Labels.generate_default_labels(
            name,
            self.KIND,
            self.COMPONENT_TYPE,
            self.OPERATOR_NAME,
        )
        _labels.update(labels or {})
        super().__init__(
            name=name,
            namespace=namespace,
            labels=_labels,
        )

    @classmethod
    def from_spec(
        self,
        name: str,
        namespace: str,
        spec: NovaAPISpec,
        uid: str = None,
        generation: int = None,
        settings: Settings = None,
        logger: Logger = None,
    ) -> "NovaAPI":
        nova = NovaAPI(name, namespace)
        nova.logger = logger or logging.getLogger(__name__)
        nova.conf = settings or Settings()
        nova.spec = spec
        nova.uid = uid
        nova.generation = generation
        nova.config_map_name = NovaAPIResources.config_data_name(name)
        nova.stateful_set_name = NovaAPIResources.stateful_set_name(name)
        return nova

    @property
    def owner_token(self) -> str:
        return NovaAPIResources.owner_token(self.name)

    @property
    def api_port(self) -> int:
        return self.conf.api_port

    @property
    def pod_selector(self) -> Dict[str, str]:
        """Labels selecting the workload pods."""
        return (
            self.labels.owner_selector()
            .include_nova_component_type(self.COMPONENT_TYPE)
            .as_dict()
        )

    def route_name(self, endpoint: str) -> str:
        return NovaAPIResources.route_name(endpoint)

    def internal_url(self, endpoint: str) -> str:
        """URL of an endpoint's service from inside the cluster."""
        host = NovaAPIResources.qualified_service_name(endpoint, self.namespace)
        return f"http://{host}:{self.api_port}{self.API_PATH}"

    def route_url(self, host: str) -> str:
        return f"http://{host}{self.API_PATH}"

    def render_inputs(self) -> Dict:
        """Everything the config is rendered from, apart from secret values."""
        return {
            "customServiceConfig": self.spec.custom_service_config,
            "defaultConfigOverwrite": dict(self.spec.default_config_overwrite or {}),
            "params": self.prepare_public_template_params(),
        }

    def prepare_public_template_params(self) -> Dict:
        return {
            "service_user": self.spec.service_user,
            "keystone_auth_url": self.spec.keystone_auth_url,
            "api_database_hostname": self.spec.api_database_hostname,
            "cell0_database_hostname": self.spec.cell0_database_hostname,
            "api_port": self.api_port,
        }

    def prepare_template_params(self, secret_values: Dict[str, str]) -> Dict:
        """Parameters of the base config template."""
        selectors = self.spec.password_selectors
        params = self.prepare_public_template_params()
        params.update(
            {
                "service_password": secret_values.get(selectors.service),
                "api_database_password": secret_values.get(selectors.api_database),
                "cell_database_password": secret_values.get(selectors.cell_database),
                "transport_url": secret_values.get("transport_url"),
            }
        )
        return params

    def prepare_owner_references(self) -> Optional[List[V1OwnerReference]]:
        if not self.uid:
            return None
        return [
            V1OwnerReference(
                api_version=f"{self.GROUP_NAME}/{self.GROUP_VERSION}",
                kind=self.KIND,
                name=self.name,
                uid=self.uid,
                controller=True,
                block_owner_deletion=True,
            )
        ]

    def prepare_metadata(
        self, name: str, labels: Dict[str, str] = None, annotations: Dict[str, str] = None
    ) -> V1ObjectMeta:
        _labels = self.labels.as_dict()
        _labels.update(labels or {})
        return V1ObjectMeta(
            name=name,
            namespace=self.namespace,
            labels=_labels,
            annotations=annotations if annotations is not None else {},
            owner_references=self.prepare_owner_references(),
        )

    def prepare_config_map(self, documents: Dict[str, str], input_hash: str) -> V1ConfigMap:
        """Build the config map carrying the rendered config documents."""
        config_map = V1ConfigMap(
            api_version="v1",
            kind="ConfigMap",
            metadata=self.prepare_metadata(
                self.config_map_name,
                annotations={self.INPUT_HASH_ANNOTATION: input_hash or ""},
            ),
            data=dict(documents),
        )
        config_map.metadata.annotations.update(
            self.prepare_hash_annotation(self.compute_hash(config_map.data))
        )
        return config_map

    def prepare_service(self, exposure: Exposure) -> V1Service:
        """Build the service of one logical endpoint."""
        endpoint = exposure.endpoint
        name = NovaAPIResources.service_name(endpoint)
        annotations = {}
        service_type = "ClusterIP"
        if isinstance(exposure, LoadBalanced):
            service_type = "LoadBalancer"
            annotations[self.METALLB_ADDRESS_POOL] = exposure.pool
            if exposure.shared_ip_key:
                annotations[self.METALLB_ALLOW_SHARED_IP] = exposure.shared_ip_key
            if exposure.addresses:
                annotations[self.METALLB_LOADBALANCER_IPS] = ",".join(
                    exposure.addresses
                )
        service = V1Service(
            api_version="v1",
            kind="Service",
            metadata=self.prepare_metadata(
                name, labels={self.ENDPOINT_LABEL: endpoint}, annotations=annotations
            ),
            spec=V1ServiceSpec(
                selector=self.pod_selector,
                type=service_type,
                ports=[
                    V1ServicePort(
                        name=name,
                        protocol="TCP",
                        port=self.api_port,
                        target_port=self.api_port,
                    )
                ],
            ),
        )
        hash_input = service.to_dict()
        service.metadata.annotations.update(
            self.prepare_hash_annotation(self.compute_hash(hash_input))
        )
        return service

    def prepare_route(self, endpoint: str) -> Dict:
        """Build the route exposing an endpoint's service outside the cluster."""
        service_name = NovaAPIResources.service_name(endpoint)
        metadata = {
            "name": self.route_name(endpoint),
            "namespace": self.namespace,
            "labels": {**self.labels.as_dict(), self.ENDPOINT_LABEL: endpoint},
        }
        owner_references = self.prepare_owner_references()
        if owner_references:
            metadata["ownerReferences"] = [
                {
                    "apiVersion": ref.api_version,
                    "kind": ref.kind,
                    "name": ref.name,
                    "uid": ref.uid,
                    "controller": ref.controller,
                    "blockOwnerDeletion": ref.block_owner_deletion,
                }
                for ref in owner_references
            ]
        return {
            "apiVersion": f"{self.ROUTE_GROUP}/{self.ROUTE_VERSION}",
            "kind": "Route",
            "metadata": metadata,
            "spec": {
                "to": {"kind": "Service", "name": service_name},
                "port": {"targetPort": service_name},
            },
        }

    def prepare_keystone_endpoint(self, endpoints: Dict[str, str]) -> Dict:
        """Build the shared endpoint catalog entry, without owner tokens."""
        return {
            "apiVersion": f"{self.KEYSTONE_GROUP}/{self.KEYSTONE_VERSION}",
            "kind": self.KEYSTONE_ENDPOINT_KIND,
            "metadata": {
                "name": self.conf.keystone_endpoint_name,
                "namespace": self.namespace,
                "labels": {Labels.KUBERNETES_MANAGED_BY_LABEL: self.OPERATOR_NAME},
                "finalizers": [],
            },
            "spec": {
                "serviceName": NovaAPIResources.SERVICE_NAME,
                "endpoints": dict(endpoints),
            },
        }

    def prepare_probe(self, probe: Probe) -> V1Probe:
        """Build a probe against the API port, or a no-op one in debug mode."""
        timings = dict(
            failure_threshold=probe.failure_threshold,
            initial_delay_seconds=probe.initial_delay_seconds,
            period_seconds=probe.period_seconds,
            success_threshold=probe.success_threshold,
            timeout_seconds=probe.timeout_seconds,
        )
        if self.spec.debug.stop_service:
            return V1Probe(_exec=V1ExecAction(command=["/bin/true"]), **timings)
        return V1Probe(
            http_get=V1HTTPGetAction(path="/", port=self.api_port), **timings
        )

    def prepare_container_resource_requirements(self) -> Dict[str, V1ResourceRequirements]:
        # resource requirements are optional
        extras = {}
        if self.spec.resources is not None:
            extras["resources"] = V1ResourceRequirements(
                requests=self.spec.resources.requests,
                limits=self.spec.resources.limits,
            )
        return extras

    def prepare_volumes(self, base_documents: List[str]) -> List[V1Volume]:
        return [
            V1Volume(
                name=self.CONFIG_VOLUME,
                config_map=V1ConfigMapVolumeSource(
                    name=self.config_map_name,
                    items=[V1KeyToPath(key=doc, path=doc) for doc in base_documents],
                ),
            ),
            V1Volume(
                name=self.CUSTOM_CONFIG_VOLUME,
                config_map=V1ConfigMapVolumeSource(
                    name=self.config_map_name,
                    items=[
                        V1KeyToPath(key=self.OVERRIDE_CONFIG, path=self.OVERRIDE_CONFIG)
                    ],
                ),
            ),
            V1Volume(name=self.LOG_VOLUME, empty_dir=V1EmptyDirVolumeSource()),
        ]

    def prepare_volume_mounts(self) -> List[V1VolumeMount]:
        return [
            V1VolumeMount(
                name=self.CONFIG_VOLUME, mount_path=self.CONFIG_DIR, read_only=True
            ),
            V1VolumeMount(
                name=self.CUSTOM_CONFIG_VOLUME,
                mount_path=f"{self.CONFIG_DIR}/{self.OVERRIDE_CONFIG}",
                sub_path=self.OVERRIDE_CONFIG,
                read_only=True,
            ),
            V1VolumeMount(name=self.LOG_VOLUME, mount_path=self.LOG_DIR),
        ]

    def prepare_container(self, config_hash: str) -> V1Container:
        command = self.SERVICE_COMMAND
        if self.spec.debug.stop_service:
            command = self.DEBUG_COMMAND
        return V1Container(
            name=self.CONTAINER_NAME,
            image=self.spec.container_image,
            image_pull_policy="IfNotPresent",
            command=list(command),
            ports=[V1ContainerPort(container_port=self.api_port, name="nova-api")],
            env=[V1EnvVar(name="CONFIG_HASH", value=config_hash or "")],
            liveness_probe=self.prepare_probe(self.spec.liveness_probe),
            readiness_probe=self.prepare_probe(self.spec.readiness_probe),
            volume_mounts=self.prepare_volume_mounts(),
            **self.prepare_container_resource_requirements(),
        )

    def prepare_log_container(self) -> V1Container:
        """Sidecar streaming the service log file to the pod log."""
        return V1Container(
            name=self.LOG_CONTAINER_NAME,
            image=self.spec.container_image,
            image_pull_policy="IfNotPresent",
            command=list(self.LOG_COMMAND),
            volume_mounts=[
                V1VolumeMount(
                    name=self.LOG_VOLUME, mount_path=self.LOG_DIR, read_only=True
                )
            ],
        )

    def prepare_pod_template(self, config_hash: str) -> V1PodTemplateSpec:
        labels = self.labels.as_dict()
        labels.update(self.pod_selector)
        annotations = networks_annotation(self.namespace, self.spec.network_attachments)
        base_documents = [self.BASE_CONFIG] + sorted(
            self.spec.default_config_overwrite or {}
        )
        return V1PodTemplateSpec(
            metadata=V1ObjectMeta(labels=labels, annotations=annotations),
            spec=V1PodSpec(
                containers=[
                    self.prepare_container(config_hash),
                    self.prepare_log_container(),
                ],
                volumes=self.prepare_volumes(base_documents),
                node_selector=self.spec.node_selector,
            ),
        )

    def prepare_stateful_set(self, config_hash: str) -> V1StatefulSet:
        """Build the stateful set running the API service."""
        stateful_set = V1StatefulSet(
            api_version="apps/v1",
            kind="StatefulSet",
            metadata=self.prepare_metadata(self.stateful_set_name),
            spec=V1StatefulSetSpec(
                replicas=self.spec.replicas,
                service_name=NovaAPIResources.service_name("internal"),
                pod_management_policy="Parallel",
                selector=V1LabelSelector(match_labels=self.pod_selector),
                template=self.prepare_pod_template(config_hash),
            ),
        )
        stateful_set.metadata.annotations.update(
            self.prepare_hash_annotation(self.compute_hash(stateful_set.to_dict()))
        )
        return stateful_set

    def has_drifted(self, actual, desired) -> bool:
        """Compare the hash annotation of an actual child with the desired one."""
        actual_annotations = (actual.metadata.annotations or {}) if actual else {}
        desired_annotations = desired.metadata.annotations or {}
        return actual_annotations.get(self.HASH_ANNOTATION) != desired_annotations.get(
            self.HASH_ANNOTATION
        )
