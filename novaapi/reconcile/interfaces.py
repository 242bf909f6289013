"""Collaborators consumed by the reconciliation core.

The orchestrator only talks to the cluster through these. The Kubernetes
implementations live in :mod:`novaapi.resources.clients`, the unit tests use
in-memory fakes.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, NamedTuple, Optional, Tuple
from kubernetes_asyncio.client import V1ConfigMap, V1Service, V1StatefulSet


class Registration(NamedTuple):
    """State of the shared endpoint catalog entry after an update."""

    ready: bool
    service_id: Optional[str] = None


class SecretResolver(ABC):
    @abstractmethod
    async def get(self, namespace: str, name: str) -> Tuple[Dict[str, bytes], bool]:
        """Return the decoded fields of a secret and whether it was found."""


class ConfigRenderer(ABC):
    @abstractmethod
    async def render(
        self,
        template_set: str,
        override_text: str,
        params: Dict[str, object],
        extra_documents: Dict[str, str] = None,
    ) -> Dict[str, str]:
        """Render the named config documents of a template set."""


class WorkloadClient(ABC):
    @abstractmethod
    async def ensure_config_map(self, config_map: V1ConfigMap) -> None:
        ...

    @abstractmethod
    async def ensure_stateful_workload(self, stateful_set: V1StatefulSet) -> int:
        """Create or update the workload. Returns the number of ready replicas."""

    @abstractmethod
    async def delete_children(self, owner: str) -> None:
        """Delete every child labelled as owned by `owner`."""

    @abstractmethod
    async def owner_deleting(self) -> bool:
        """Whether the owning NovaAPI is gone or marked for deletion."""


class NetworkObjectClient(ABC):
    @abstractmethod
    async def ensure_service(self, service: V1Service) -> None:
        ...

    @abstractmethod
    async def ensure_route(self, route: Dict) -> Optional[str]:
        """Create or update a route. Returns the host it was admitted with."""

    @abstractmethod
    async def delete_route(self, name: str) -> None:
        ...

    @abstractmethod
    async def network_attachment_exists(self, name: str) -> bool:
        ...


class EndpointCatalogClient(ABC):
    @abstractmethod
    async def ensure_endpoint_registration(
        self, owner_token: str, endpoints: Dict[str, str]
    ) -> Registration:
        """Publish `endpoints` and record `owner_token` as a finalizer."""

    @abstractmethod
    async def remove_owner_token(self, owner_token: str) -> None:
        """Drop `owner_token` from the finalizers using compare-and-update.

        Raises OwnershipConflictError when the write lost a race.
        """


class PodInspector(ABC):
    @abstractmethod
    async def list_pod_interface_ips(
        self, selector: Dict[str, str]
    ) -> Dict[str, Dict[str, List[str]]]:
        """Map pod name to the network status of its interfaces."""


class Clients(NamedTuple):
    """The collaborators one reconciliation pass runs against."""

    secrets: SecretResolver
    renderer: ConfigRenderer
    workloads: WorkloadClient
    network: NetworkObjectClient
    catalog: EndpointCatalogClient
    pods: PodInspector
