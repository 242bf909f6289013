from novaapi.types.base import BaseModel


class NovaAPIDebug(BaseModel):
    """Debug switches for the nova-api workload."""

    stop_service: bool
