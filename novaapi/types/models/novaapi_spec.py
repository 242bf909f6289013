from typing import Dict, List, Optional
from novaapi.types.base import BaseModel
from novaapi.types.models.debug import NovaAPIDebug
from novaapi.types.models.external_endpoint import ExternalEndpoint
from novaapi.types.models.password_selectors import PasswordSelectors
from novaapi.types.models.probe import Probe
from novaapi.types.models.resource_requirements import ResourceRequirements


class NovaAPISpec(BaseModel):
    """NovaAPI CRD spec"""

    container_image: str
    replicas: int
    secret: str
    password_selectors: PasswordSelectors
    api_message_bus_secret_name: Optional[str]
    service_user: str
    keystone_auth_url: Optional[str]
    api_database_hostname: Optional[str]
    cell0_database_hostname: Optional[str]
    custom_service_config: str
    default_config_overwrite: Dict[str, str]
    network_attachments: List[str]
    external_endpoints: List[ExternalEndpoint]
    node_selector: Optional[Dict[str, str]]
    resources: Optional[ResourceRequirements]
    debug: NovaAPIDebug
    liveness_probe: Probe
    readiness_probe: Probe
