"""Kubernetes implementations of the reconciliation collaborators."""
import base64
import logging
from logging import Logger
from typing import Dict, List, Optional, Tuple
from kubernetes_asyncio.client import (
    ApiException,
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    V1ConfigMap,
    V1Service,
    V1StatefulSet,
)
from kubernetes_asyncio.client.api_client import ApiClient
from novaapi.reconcile.interfaces import (
    Clients,
    ConfigRenderer,
    EndpointCatalogClient,
    NetworkObjectClient,
    PodInspector,
    Registration,
    SecretResolver,
    WorkloadClient,
)
from novaapi.reconcile.network import NETWORK_STATUS_ANNOTATION, parse_network_status
from novaapi.resources.novaapi import NovaAPI
from novaapi.utils.errors import (
    OwnershipConflictError,
    TransientAPIError,
    already_exists_error,
    conflict_error,
    describe_api_exception,
    not_found_error,
)


class KubernetesNovaAPIClient(
    SecretResolver,
    WorkloadClient,
    NetworkObjectClient,
    EndpointCatalogClient,
    PodInspector,
):
    """Applies the children of one NovaAPI through the Kubernetes API."""

    logger: Logger

    def __init__(self, nova: NovaAPI, api_client: ApiClient, logger: Logger = None):
        self.nova = nova
        self.api_client = api_client
        self.logger = logger or logging.getLogger(__name__)
        self.core_v1_api = CoreV1Api(api_client)
        self.apps_v1_api = AppsV1Api(api_client)
        self.custom_objects_api = CustomObjectsApi(api_client)

    @property
    def namespace(self) -> str:
        return self.nova.namespace

    async def get(self, namespace: str, name: str) -> Tuple[Dict[str, bytes], bool]:
        secret = await self.nova.fetch_secret(self.core_v1_api, name, namespace)
        if secret is None:
            return {}, False
        fields = {
            key: base64.b64decode(value) for key, value in (secret.data or {}).items()
        }
        return fields, True

    async def ensure_config_map(self, config_map: V1ConfigMap) -> None:
        name = config_map.metadata.name
        actual = await self.nova.fetch_config_map(self.core_v1_api, name, self.namespace)
        if actual is None:
            await self.nova.create_config_map(self.core_v1_api, self.namespace, config_map)
            self.logger.info(f"Created config map {name}.")
        elif self.nova.has_drifted(actual, config_map):
            config_map.metadata.resource_version = actual.metadata.resource_version
            await self.nova.replace_config_map(
                self.core_v1_api, name, self.namespace, config_map
            )
            self.logger.info(f"Updated config map {name}.")

    async def ensure_stateful_workload(self, stateful_set: V1StatefulSet) -> int:
        name = stateful_set.metadata.name
        actual = await self.nova.fetch_stateful_set(self.apps_v1_api, name, self.namespace)
        if actual is None:
            actual = await self.nova.create_stateful_set(
                self.apps_v1_api, self.namespace, stateful_set
            )
            self.logger.info(f"Created stateful set {name}.")
        elif self.nova.has_drifted(actual, stateful_set):
            actual = await self.nova.patch_stateful_set(
                self.apps_v1_api,
                name,
                self.namespace,
                self.prepare_stateful_set_patch(stateful_set),
            )
            self.logger.info(f"Patched stateful set {name}.")
        status = actual.status if actual is not None else None
        return (status.ready_replicas or 0) if status else 0

    def prepare_stateful_set_patch(self, stateful_set: V1StatefulSet) -> Dict:
        """Only replicas, the pod template and metadata are updated in place."""
        return {
            "metadata": {
                "labels": stateful_set.metadata.labels,
                "annotations": stateful_set.metadata.annotations,
            },
            "spec": {
                "replicas": stateful_set.spec.replicas,
                "template": self.api_client.sanitize_for_serialization(
                    stateful_set.spec.template
                ),
            },
        }

    async def delete_children(self, owner: str) -> None:
        selector = self.nova.labels.owner_selector().as_str()
        deleted = await self.nova.delete_collection(
            self.core_v1_api, self.apps_v1_api, self.namespace, selector
        )
        routes = await self.nova.list_custom_objects(
            self.custom_objects_api,
            self.namespace,
            NovaAPI.ROUTE_GROUP,
            NovaAPI.ROUTE_VERSION,
            NovaAPI.ROUTE_PLURAL,
            label_selector=selector,
        )
        for route in routes.get("items", []):
            await self.delete_route(route["metadata"]["name"])
            deleted.append(f"route/{route['metadata']['name']}")
        self.logger.info(f"Deleted children of {owner}: {deleted}")

    async def ensure_service(self, service: V1Service) -> None:
        name = service.metadata.name
        actual = await self.nova.fetch_service(self.core_v1_api, name, self.namespace)
        if actual is None:
            await self.nova.create_service(self.core_v1_api, self.namespace, service)
            self.logger.info(f"Created service {name}.")
        elif self.nova.has_drifted(actual, service):
            service.metadata.resource_version = actual.metadata.resource_version
            if service.spec.type == actual.spec.type:
                service.spec.cluster_ip = actual.spec.cluster_ip
            await self.nova.replace_service(self.core_v1_api, name, self.namespace, service)
            self.logger.info(f"Replaced service {name}.")

    async def ensure_route(self, route: Dict) -> Optional[str]:
        name = route["metadata"]["name"]
        actual = await self.nova.get_custom_object(
            self.custom_objects_api,
            self.namespace,
            NovaAPI.ROUTE_GROUP,
            NovaAPI.ROUTE_VERSION,
            NovaAPI.ROUTE_PLURAL,
            name,
        )
        if actual is None:
            try:
                actual = await self.nova.create_custom_object(
                    self.custom_objects_api,
                    self.namespace,
                    NovaAPI.ROUTE_GROUP,
                    NovaAPI.ROUTE_VERSION,
                    NovaAPI.ROUTE_PLURAL,
                    route,
                )
            except ApiException as ex:
                if already_exists_error(ex):
                    raise TransientAPIError(f"route {name} appeared concurrently") from ex
                raise
            self.logger.info(f"Created route {name}.")
        elif actual.get("spec", {}).get("to") != route["spec"]["to"]:
            body = dict(actual)
            body["spec"] = {**actual.get("spec", {}), **route["spec"]}
            actual = await self.nova.replace_custom_object(
                self.custom_objects_api,
                self.namespace,
                NovaAPI.ROUTE_GROUP,
                NovaAPI.ROUTE_VERSION,
                NovaAPI.ROUTE_PLURAL,
                name,
                body,
            )
            self.logger.info(f"Replaced route {name}.")
        return self.route_host(actual)

    @staticmethod
    def route_host(route: Dict) -> Optional[str]:
        host = (route.get("spec") or {}).get("host")
        if host:
            return host
        for ingress in (route.get("status") or {}).get("ingress") or []:
            if ingress.get("host"):
                return ingress["host"]
        return None

    async def delete_route(self, name: str) -> None:
        await self.nova.delete_custom_object(
            self.custom_objects_api,
            self.namespace,
            NovaAPI.ROUTE_GROUP,
            NovaAPI.ROUTE_VERSION,
            NovaAPI.ROUTE_PLURAL,
            name,
        )

    async def owner_deleting(self) -> bool:
        owner = await self.nova.get_custom_object(
            self.custom_objects_api,
            self.namespace,
            NovaAPI.GROUP_NAME,
            NovaAPI.GROUP_VERSION,
            NovaAPI.PLURAL_NAME,
            self.nova.name,
        )
        if owner is None:
            return True
        return bool(owner["metadata"].get("deletionTimestamp"))

    async def network_attachment_exists(self, name: str) -> bool:
        nad = await self.nova.get_custom_object(
            self.custom_objects_api,
            self.namespace,
            NovaAPI.NAD_GROUP,
            NovaAPI.NAD_VERSION,
            NovaAPI.NAD_PLURAL,
            name,
        )
        return nad is not None

    async def _get_keystone_endpoint(self) -> Optional[Dict]:
        return await self.nova.get_custom_object(
            self.custom_objects_api,
            self.namespace,
            NovaAPI.KEYSTONE_GROUP,
            NovaAPI.KEYSTONE_VERSION,
            NovaAPI.KEYSTONE_ENDPOINT_PLURAL,
            self.nova.conf.keystone_endpoint_name,
        )

    async def _write_keystone_endpoint(self, body: Dict, create: bool) -> Dict:
        try:
            if create:
                return await self.nova.create_custom_object(
                    self.custom_objects_api,
                    self.namespace,
                    NovaAPI.KEYSTONE_GROUP,
                    NovaAPI.KEYSTONE_VERSION,
                    NovaAPI.KEYSTONE_ENDPOINT_PLURAL,
                    body,
                )
            return await self.nova.replace_custom_object(
                self.custom_objects_api,
                self.namespace,
                NovaAPI.KEYSTONE_GROUP,
                NovaAPI.KEYSTONE_VERSION,
                NovaAPI.KEYSTONE_ENDPOINT_PLURAL,
                body["metadata"]["name"],
                body,
            )
        except ApiException as ex:
            if conflict_error(ex) or already_exists_error(ex):
                raise OwnershipConflictError(describe_api_exception(ex)) from ex
            raise

    async def ensure_endpoint_registration(
        self, owner_token: str, endpoints: Dict[str, str]
    ) -> Registration:
        entry = await self._get_keystone_endpoint()
        if entry is None:
            body = self.nova.prepare_keystone_endpoint(endpoints)
            body["metadata"]["finalizers"] = [owner_token]
            entry = await self._write_keystone_endpoint(body, create=True)
            self.logger.info(f"Registered endpoints {endpoints}.")
        else:
            finalizers = list(entry["metadata"].get("finalizers") or [])
            spec = entry.get("spec") or {}
            if owner_token not in finalizers or spec.get("endpoints") != endpoints:
                if owner_token not in finalizers:
                    finalizers.append(owner_token)
                entry["metadata"]["finalizers"] = finalizers
                entry["spec"] = {**spec, "endpoints": dict(endpoints)}
                entry = await self._write_keystone_endpoint(entry, create=False)
                self.logger.info(f"Updated endpoint registration {endpoints}.")
        return self.registration_state(entry)

    @staticmethod
    def registration_state(entry: Dict) -> Registration:
        status = entry.get("status") or {}
        ready = any(
            c.get("type") == "Ready" and c.get("status") == "True"
            for c in status.get("conditions") or []
        )
        return Registration(ready=ready, service_id=status.get("serviceID"))

    async def remove_owner_token(self, owner_token: str) -> None:
        entry = await self._get_keystone_endpoint()
        if entry is None:
            return
        finalizers = list(entry["metadata"].get("finalizers") or [])
        if owner_token not in finalizers:
            return
        entry["metadata"]["finalizers"] = [f for f in finalizers if f != owner_token]
        try:
            await self._write_keystone_endpoint(entry, create=False)
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise
        self.logger.info(f"Removed {owner_token} from endpoint catalog finalizers.")

    async def list_pod_interface_ips(
        self, selector: Dict[str, str]
    ) -> Dict[str, Dict[str, List[str]]]:
        pods = await self.nova.list_pods(self.core_v1_api, self.namespace, selector)
        result = {}
        for pod in pods.items:
            annotations = pod.metadata.annotations or {}
            try:
                result[pod.metadata.name] = parse_network_status(
                    annotations.get(NETWORK_STATUS_ANNOTATION)
                )
            except ValueError as ex:
                self.logger.warning(
                    f"Ignoring network status of pod {pod.metadata.name}: {ex}"
                )
                result[pod.metadata.name] = {}
        return result


def make_clients(
    nova: NovaAPI,
    api_client: ApiClient,
    renderer: ConfigRenderer,
    logger: Logger = None,
) -> Clients:
    """Bundle the collaborators a reconciliation pass of `nova` runs against."""
    client = KubernetesNovaAPIClient(nova, api_client, logger=logger)
    return Clients(
        secrets=client,
        renderer=renderer,
        workloads=client,
        network=client,
        catalog=client,
        pods=client,
    )
