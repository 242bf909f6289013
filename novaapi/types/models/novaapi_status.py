from typing import Dict, List, Optional
from novaapi.types.base import BaseModel


class NovaAPIStatus(BaseModel):
    """Observed state of a NovaAPI, persisted under `.status`."""

    hash: Dict[str, str]
    ready_count: int
    service_id: str
    api_endpoints: Dict[str, str]
    network_attachments: Dict[str, List[str]]
    conditions: List[Dict]
    observed_generation: Optional[int]
