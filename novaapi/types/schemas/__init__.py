from .probe import ProbeSchema
from .resource_requirements import ResourceRequirementsSchema
from .password_selectors import PasswordSelectorsSchema
from .debug import NovaAPIDebugSchema
from .external_endpoint import ExternalEndpointSchema
from .novaapi_spec import NovaAPISpecSchema
from .novaapi_status import NovaAPIStatusSchema

__all__ = [
    "ProbeSchema",
    "ResourceRequirementsSchema",
    "PasswordSelectorsSchema",
    "NovaAPIDebugSchema",
    "ExternalEndpointSchema",
    "NovaAPISpecSchema",
    "NovaAPIStatusSchema",
]
