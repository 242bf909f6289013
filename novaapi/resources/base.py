import mmh3
import hashlib
from typing import Any, Dict, List, Union
from novaapi.utils.helpers import canonicalize_dict
from novaapi.common.models.labels import Labels
from novaapi.utils.errors import already_exists_error, not_found_error
from kubernetes_asyncio.client import (
    ApiException,
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    V1ConfigMap,
    V1DeleteOptions,
    V1PodList,
    V1Secret,
    V1Service,
    V1StatefulSet,
)


class BaseResource:
    """Base resource model."""

    OPERATOR_NAME = "nova-operator"
    HASH_ANNOTATION = "nova.openstack.org/resource-hash"

    _name: str
    _namespace: str
    _labels: Labels

    def __init__(self, name: str, namespace: str, labels: Labels):
        self._name = name
        self._namespace = namespace
        self._labels = labels

    @property
    def name(self) -> str:
        return self._name

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def labels(self) -> Labels:
        return self._labels

    def compute_hash(self, data: Any) -> str:
        """Compute a murmur3 hash."""
        if isinstance(data, dict):
            _data = canonicalize_dict(data)
        elif isinstance(data, str):
            _data = data.encode()
        else:
            raise ValueError(f"Hash of {type(data)} is not supported.")
        mumur_str = str(mmh3.hash128(_data))

        hash_obj = hashlib.sha256(mumur_str.encode("utf-8"))
        full_hash = hash_obj.hexdigest()

        # First 16 characters keep annotations readable
        return full_hash[:16]

    def prepare_hash_annotation(self, hash: Union[str, int]) -> Dict[str, str]:
        """Prepare hash annotation for k8s resources."""
        return {self.HASH_ANNOTATION: str(hash)}

    async def fetch_secret(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> V1Secret:
        try:
            return await core_v1_api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def fetch_config_map(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> V1ConfigMap:
        try:
            return await core_v1_api.read_namespaced_config_map(name=name, namespace=namespace)
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_config_map(
        self, core_v1_api: CoreV1Api, namespace: str, config_map: V1ConfigMap
    ):
        try:
            await core_v1_api.create_namespaced_config_map(
                namespace=namespace, body=config_map
            )
        except ApiException as ex:
            if already_exists_error(ex):
                await self.replace_config_map(
                    core_v1_api,
                    name=config_map.metadata.name,
                    namespace=namespace,
                    config_map=config_map,
                )
            else:
                raise

    async def replace_config_map(
        self, core_v1_api: CoreV1Api, name: str, namespace: str, config_map: V1ConfigMap
    ):
        await core_v1_api.replace_namespaced_config_map(
            name=name, namespace=namespace, body=config_map
        )

    async def fetch_service(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> V1Service:
        """Retrieve the latest state of a service"""
        try:
            return await core_v1_api.read_namespaced_service(name=name, namespace=namespace)
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_service(
        self, core_v1_api: CoreV1Api, namespace: str, service: V1Service
    ) -> None:
        try:
            await core_v1_api.create_namespaced_service(namespace=namespace, body=service)
        except ApiException as ex:
            if already_exists_error(ex):
                await self.replace_service(
                    core_v1_api,
                    name=service.metadata.name,
                    namespace=namespace,
                    service=service,
                )
            else:
                raise

    async def replace_service(
        self, core_v1_api: CoreV1Api, name: str, namespace: str, service: V1Service
    ):
        await core_v1_api.replace_namespaced_service(
            name=name, namespace=namespace, body=service
        )

    async def fetch_stateful_set(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str
    ) -> V1StatefulSet:
        try:
            return await apps_v1_api.read_namespaced_stateful_set(name=name, namespace=namespace)
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_stateful_set(
        self, apps_v1_api: AppsV1Api, namespace: str, stateful_set: V1StatefulSet
    ) -> V1StatefulSet:
        try:
            return await apps_v1_api.create_namespaced_stateful_set(
                namespace=namespace, body=stateful_set
            )
        except ApiException as ex:
            if already_exists_error(ex):
                return await apps_v1_api.replace_namespaced_stateful_set(
                    name=stateful_set.metadata.name,
                    namespace=namespace,
                    body=stateful_set,
                )
            raise

    async def patch_stateful_set(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str, stateful_set: Any
    ) -> V1StatefulSet:
        return await apps_v1_api.patch_namespaced_stateful_set(
            name=name, namespace=namespace, body=stateful_set
        )

    async def get_custom_object(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
    ):
        try:
            return await custom_objects_api.get_namespaced_custom_object(
                group=group,
                version=version,
                namespace=namespace,
                plural=plural,
                name=name,
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_custom_object(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        body: Dict,
    ):
        return await custom_objects_api.create_namespaced_custom_object(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            body=body,
        )

    async def replace_custom_object(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
        body: Dict,
    ):
        """Replace a custom object. A `resourceVersion` in the body makes this
        a compare-and-update."""
        return await custom_objects_api.replace_namespaced_custom_object(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            name=name,
            body=body,
        )

    async def delete_custom_object(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
    ):
        try:
            await custom_objects_api.delete_namespaced_custom_object(
                group=group,
                version=version,
                namespace=namespace,
                plural=plural,
                name=name,
            )
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise

    async def list_custom_objects(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        label_selector: str = None,
    ):
        return await custom_objects_api.list_namespaced_custom_object(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            label_selector=label_selector,
        )

    async def list_pods(
        self, core_v1_api: CoreV1Api, namespace: str, label_selector: dict = None
    ) -> V1PodList:
        """List pods in namespace, optionally filtered by label selector.

        Args:
            core_v1_api: CoreV1Api instance
            namespace: Namespace to list pods in
            label_selector: Dictionary of label key-value pairs to filter pods

        Returns:
            V1PodList object containing matching pods
        """
        label_selector_str = None
        if label_selector:
            label_selector_str = ",".join([f"{k}={v}" for k, v in label_selector.items()])

        return await core_v1_api.list_namespaced_pod(
            namespace=namespace, label_selector=label_selector_str
        )

    async def delete_collection(
        self,
        core_v1_api: CoreV1Api,
        apps_v1_api: AppsV1Api,
        namespace: str,
        label_selector: str,
    ) -> List[str]:
        """Delete stateful sets, services and config maps matching a selector."""
        deleted = []
        options = V1DeleteOptions(propagation_policy="Background")
        stateful_sets = await apps_v1_api.list_namespaced_stateful_set(
            namespace=namespace, label_selector=label_selector
        )
        for item in stateful_sets.items:
            await self._delete_ignore_missing(
                apps_v1_api.delete_namespaced_stateful_set,
                item.metadata.name,
                namespace,
                options,
            )
            deleted.append(f"statefulset/{item.metadata.name}")
        services = await core_v1_api.list_namespaced_service(
            namespace=namespace, label_selector=label_selector
        )
        for item in services.items:
            await self._delete_ignore_missing(
                core_v1_api.delete_namespaced_service,
                item.metadata.name,
                namespace,
                options,
            )
            deleted.append(f"service/{item.metadata.name}")
        config_maps = await core_v1_api.list_namespaced_config_map(
            namespace=namespace, label_selector=label_selector
        )
        for item in config_maps.items:
            await self._delete_ignore_missing(
                core_v1_api.delete_namespaced_config_map,
                item.metadata.name,
                namespace,
                options,
            )
            deleted.append(f"configmap/{item.metadata.name}")
        return deleted

    async def _delete_ignore_missing(self, delete, name, namespace, options):
        try:
            await delete(name=name, namespace=namespace, body=options)
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise
