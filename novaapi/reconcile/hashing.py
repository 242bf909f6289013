import hashlib
from typing import Dict, List, Tuple
from novaapi.types.models.novaapi_status import NovaAPIStatus
from novaapi.utils.helpers import canonicalize_dict

INPUT_HASH = "input"


class HashTracker:
    """Stable fingerprints of the inputs a NovaAPI is rendered from."""

    @staticmethod
    def fingerprint(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def has_changed(kind: str, digest: str, observed: NovaAPIStatus) -> bool:
        return (observed.hash or {}).get(kind) != digest

    @staticmethod
    def record(kind: str, digest: str, observed: NovaAPIStatus) -> None:
        hashes = dict(observed.hash or {})
        hashes[kind] = digest
        observed.hash = hashes

    @staticmethod
    def input_bytes(
        secret_fields: List[Tuple[str, bytes]], render_inputs: Dict
    ) -> bytes:
        """Canonical bytes of the watched inputs.

        Secret values are taken in the given (selector) order and are each
        length prefixed so that adjacent values can not run into each other.
        """
        parts = []
        for name, value in secret_fields:
            value = value if isinstance(value, bytes) else str(value).encode()
            parts.append(f"{name}:{len(value)}:".encode() + value)
        parts.append(canonicalize_dict(render_inputs).encode())
        return b"\n".join(parts)
