import pytest
from marshmallow import ValidationError
from novaapi.types.models import LoadBalanced, Routed, resolve_exposures
from novaapi.types.schemas import NovaAPISpecSchema, NovaAPIStatusSchema


class TestNovaAPISpecSchema:
    def test_defaults(self, spec_data):
        spec = NovaAPISpecSchema().load(
            {"containerImage": "nova-api:latest", "secret": "osp-secret"}
        )
        assert spec.replicas == 1
        assert spec.service_user == "nova"
        assert spec.custom_service_config == ""
        assert spec.default_config_overwrite == {}
        assert spec.network_attachments == []
        assert spec.external_endpoints == []
        assert spec.api_message_bus_secret_name is None
        assert spec.password_selectors.fields() == [
            "NovaPassword",
            "NovaAPIDatabasePassword",
            "NovaCell0DatabasePassword",
        ]
        assert spec.debug.stop_service is False
        assert spec.liveness_probe.period_seconds == 30
        assert spec.readiness_probe.timeout_seconds == 5

    def test_load(self, spec_data):
        spec_data["passwordSelectors"] = {"service": "ServicePassword"}
        spec_data["networkAttachments"] = ["internalapi"]
        spec = NovaAPISpecSchema().load(spec_data)
        assert spec.secret == "test-secret"
        assert spec.keystone_auth_url == "http://keystone-internal.openstack.svc:5000"
        assert spec.password_selectors.service == "ServicePassword"
        assert spec.password_selectors.api_database == "NovaAPIDatabasePassword"
        assert spec.network_attachments == ["internalapi"]

    @pytest.mark.parametrize("missing", ["containerImage", "secret"])
    def test_required(self, spec_data, missing):
        spec_data.pop(missing)
        with pytest.raises(ValidationError) as e:
            NovaAPISpecSchema().load(spec_data)
        assert missing in e.value.messages

    def test_negative_replicas(self, spec_data):
        spec_data["replicas"] = -1
        with pytest.raises(ValidationError) as e:
            NovaAPISpecSchema().load(spec_data)
        assert "replicas" in e.value.messages

    def test_duplicate_external_endpoint(self, spec_data):
        spec_data["externalEndpoints"] = [
            {"endpoint": "internal", "ipAddressPool": "internalapi"},
            {"endpoint": "internal", "ipAddressPool": "ctlplane"},
        ]
        with pytest.raises(ValidationError) as e:
            NovaAPISpecSchema().load(spec_data)
        assert "externalEndpoints" in e.value.messages

    def test_unknown_endpoint(self, spec_data):
        spec_data["externalEndpoints"] = [
            {"endpoint": "admin", "ipAddressPool": "internalapi"}
        ]
        with pytest.raises(ValidationError):
            NovaAPISpecSchema().load(spec_data)

    def test_empty_address_pool(self, spec_data):
        spec_data["externalEndpoints"] = [{"endpoint": "public", "ipAddressPool": ""}]
        with pytest.raises(ValidationError):
            NovaAPISpecSchema().load(spec_data)

    @pytest.mark.parametrize("name", ["01-nova.conf", "03-nova-override.conf"])
    def test_reserved_document_names(self, spec_data, name):
        spec_data["defaultConfigOverwrite"] = {name: "[DEFAULT]"}
        with pytest.raises(ValidationError) as e:
            NovaAPISpecSchema().load(spec_data)
        assert "defaultConfigOverwrite" in e.value.messages


class TestResolveExposures:
    def load(self, spec_data, external_endpoints):
        spec_data["externalEndpoints"] = external_endpoints
        return NovaAPISpecSchema().load(spec_data).external_endpoints

    def test_all_routed(self, spec_data):
        assert resolve_exposures(self.load(spec_data, [])) == {
            "public": Routed("public"),
            "internal": Routed("internal"),
        }

    def test_load_balanced(self, spec_data):
        exposures = resolve_exposures(
            self.load(
                spec_data,
                [
                    {
                        "endpoint": "internal",
                        "ipAddressPool": "internalapi",
                        "loadBalancerIPs": ["172.17.0.80"],
                    }
                ],
            )
        )
        assert exposures["public"] == Routed("public")
        assert exposures["internal"] == LoadBalanced(
            "internal", "internalapi", ["172.17.0.80"], "internalapi"
        )

    def test_shared_ip_key(self, spec_data):
        exposures = resolve_exposures(
            self.load(
                spec_data,
                [
                    {
                        "endpoint": "public",
                        "ipAddressPool": "internalapi",
                        "sharedIPKey": "openstack",
                    }
                ],
            )
        )
        assert exposures["public"].shared_ip_key == "openstack"

    def test_not_shared(self, spec_data):
        exposures = resolve_exposures(
            self.load(
                spec_data,
                [
                    {
                        "endpoint": "public",
                        "ipAddressPool": "internalapi",
                        "sharedIP": False,
                    }
                ],
            )
        )
        assert exposures["public"].shared_ip_key is None


class TestNovaAPIStatusSchema:
    def test_empty(self):
        status = NovaAPIStatusSchema().load({})
        assert status.hash == {}
        assert status.ready_count == 0
        assert status.api_endpoints == {}
        assert status.network_attachments == {}
        assert status.conditions == []
        assert status.observed_generation is None

    def test_dump_uses_camel_case(self):
        data = {
            "hash": {"input": "abc"},
            "readyCount": 1,
            "serviceID": "id",
            "apiEndpoints": {"public": "http://nova/v2.1"},
            "networkAttachments": {"openstack/internalapi": ["10.0.0.1"]},
            "conditions": [],
            "observedGeneration": 3,
        }
        status = NovaAPIStatusSchema().load(data)
        assert NovaAPIStatusSchema().dump(status) == data


class TestModels:
    def test_as_dict(self, spec_data):
        spec_data["externalEndpoints"] = [
            {"endpoint": "internal", "ipAddressPool": "internalapi"}
        ]
        data = NovaAPISpecSchema().load(spec_data).as_dict()
        assert data["secret"] == "test-secret"
        assert data["external_endpoints"][0]["ip_address_pool"] == "internalapi"
        assert data["password_selectors"]["service"] == "NovaPassword"

    def test_unknown_fields(self, spec_data):
        spec_data["somethingNew"] = True
        assert "somethingNew" not in NovaAPISpecSchema.load_lenient(spec_data)
        assert "somethingNew" in NovaAPISpecSchema().load(spec_data)
