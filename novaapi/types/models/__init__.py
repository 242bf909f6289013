from .probe import Probe
from .resource_requirements import ResourceRequirements
from .password_selectors import PasswordSelectors
from .debug import NovaAPIDebug
from .external_endpoint import (
    ExternalEndpoint,
    Routed,
    LoadBalanced,
    Exposure,
    resolve_exposures,
)
from .novaapi_spec import NovaAPISpec
from .novaapi_status import NovaAPIStatus
from .novaapi_resources import NovaAPIResources

__all__ = [
    "Probe",
    "ResourceRequirements",
    "PasswordSelectors",
    "NovaAPIDebug",
    "ExternalEndpoint",
    "Routed",
    "LoadBalanced",
    "Exposure",
    "resolve_exposures",
    "NovaAPISpec",
    "NovaAPIStatus",
    "NovaAPIResources",
]
