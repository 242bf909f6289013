"""Operator lifecycle: cluster access, shared clients and kopf settings."""
import kopf
import logging
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient
from novaapi.resources import NovaAPI, TemplateConfigRenderer
from novaapi.types.settings import Settings


async def load_cluster_config(logger: logging.Logger):
    """In-cluster service account first, local kubeconfig for development."""
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
        return
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
    try:
        await config.load_kube_config()
    except config.ConfigException as e:
        logger.error(f"Failed to load Kubernetes configuration: {e}")
        raise
    logger.info("Loaded local Kubernetes configuration")


@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, memo: kopf.Memo, logger: logging.Logger, **kwargs
):
    await load_cluster_config(logger)

    conf = Settings()
    memo.conf = conf
    NovaAPI.conf = conf
    NovaAPI.renderer = TemplateConfigRenderer(conf.operator_templates)
    NovaAPI.shared_api_client = ApiClient()
    logger.info(
        f"Rendering config from {conf.operator_templates}, "
        f"catalog entry {conf.keystone_endpoint_name!r}"
    )

    settings.batching.worker_limit = conf.worker_limit
    # Only warnings and errors become Kubernetes events
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(logger: logging.Logger, **kwargs):
    if NovaAPI.shared_api_client is not None:
        await NovaAPI.shared_api_client.close()
        NovaAPI.shared_api_client = None
        logger.info("Shared API client closed")
