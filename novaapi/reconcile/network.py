import json
from typing import Dict, List, NamedTuple

NETWORKS_ANNOTATION = "k8s.v1.cni.cncf.io/networks"
NETWORK_STATUS_ANNOTATION = "k8s.v1.cni.cncf.io/network-status"


class NetworkAttachmentResult(NamedTuple):
    network_attachments: Dict[str, List[str]]
    ready: bool
    missing: List[str]

    @property
    def message(self) -> str:
        """Error text naming the attachments still without addresses."""
        return (
            "not all pods have interfaces with ips as configured in "
            f"NetworkAttachments: [{' '.join(self.missing)}]"
        )


def attachment_key(namespace: str, name: str) -> str:
    return f"{namespace}/{name}"


def networks_annotation(namespace: str, attachments: List[str]) -> Dict[str, str]:
    """Pod template annotation requesting the given additional interfaces."""
    if not attachments:
        return {}
    networks = [{"name": name, "namespace": namespace} for name in attachments]
    return {NETWORKS_ANNOTATION: json.dumps(networks, separators=(",", ":"))}


def parse_network_status(annotation: str) -> Dict[str, List[str]]:
    """Parse the network status annotation a CNI meta plugin writes on a pod.

    Returns a mapping of attachment key to the interface's addresses. A pod
    without the annotation has no attachments.

    Raises:
        ValueError: if the annotation is not a list of network status entries.
    """
    if not annotation:
        return {}
    entries = json.loads(annotation)
    if not isinstance(entries, list):
        raise ValueError("network status annotation is not a list")
    result = {}
    for entry in entries:
        if not isinstance(entry, dict) or "name" not in entry:
            raise ValueError(f"malformed network status entry: {entry!r}")
        result.setdefault(entry["name"], []).extend(entry.get("ips") or [])
    return result


class NetworkAttachmentTracker:
    """Derives attachment readiness from the network status of workload pods."""

    @staticmethod
    def evaluate(
        namespace: str,
        attachments: List[str],
        pod_ips: Dict[str, Dict[str, List[str]]],
        ready_count: int,
    ) -> NetworkAttachmentResult:
        """
        Args:
            namespace: Namespace the attachment definitions live in.
            attachments: Requested attachment names.
            pod_ips: Pod name to attachment key to addresses.
            ready_count: Number of ready workload replicas.
        """
        required = max(ready_count, 1)
        network_attachments = {}
        missing = []
        for name in attachments or []:
            key = attachment_key(namespace, name)
            ips = []
            reporting = 0
            for pod in sorted(pod_ips):
                pod_addresses = pod_ips[pod].get(key) or []
                if pod_addresses:
                    reporting += 1
                    ips.extend(pod_addresses)
            if ips:
                network_attachments[key] = ips
            if reporting < required:
                missing.append(name)
        missing = sorted(set(missing))
        return NetworkAttachmentResult(network_attachments, not missing, missing)
