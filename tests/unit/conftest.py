import pytest
from novaapi.resources.config import TemplateConfigRenderer
from novaapi.types.settings import OPERATOR_TEMPLATES, Settings

NAMESPACE = "openstack"
SECRET = "test-secret"
TRANSPORT_SECRET = "rabbitmq-transport"


@pytest.fixture
def settings():
    return Settings(
        requeue_delay_seconds=10.0,
        error_retry_delay_seconds=30.0,
        conflict_retry_attempts=3,
        conflict_retry_delay_seconds=1.0,
        api_port=8774,
        keystone_endpoint_name="nova",
    )


@pytest.fixture
def template_renderer():
    return TemplateConfigRenderer(OPERATOR_TEMPLATES)


@pytest.fixture
def service_secret():
    return {
        "NovaPassword": b"service-password",
        "NovaAPIDatabasePassword": b"api-db-password",
        "NovaCell0DatabasePassword": b"cell0-db-password",
    }


@pytest.fixture
def transport_secret():
    return {"transport_url": b"rabbit://fake"}


@pytest.fixture
def spec_data():
    return {
        "containerImage": "quay.io/podified/openstack-nova-api:current",
        "replicas": 1,
        "secret": SECRET,
        "apiMessageBusSecretName": TRANSPORT_SECRET,
        "keystoneAuthURL": "http://keystone-internal.openstack.svc:5000",
        "apiDatabaseHostname": "openstack-api.openstack.svc",
        "cell0DatabaseHostname": "openstack-cell0.openstack.svc",
        "customServiceConfig": "foo=bar",
    }
