from .base import BaseResource
from .novaapi import NovaAPI
from .config import TemplateConfigRenderer
from .clients import KubernetesNovaAPIClient, make_clients

__all__ = [
    "BaseResource",
    "NovaAPI",
    "TemplateConfigRenderer",
    "KubernetesNovaAPIClient",
    "make_clients",
]
