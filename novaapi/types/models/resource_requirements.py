from typing import Dict, Optional
from novaapi.types.base import BaseModel


class ResourceRequirements(BaseModel):
    """Container resource requests/limits."""

    requests: Optional[Dict[str, str]]
    limits: Optional[Dict[str, str]]
