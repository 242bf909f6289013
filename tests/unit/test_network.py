import json
import pytest
from novaapi.reconcile.network import (
    NETWORKS_ANNOTATION,
    NetworkAttachmentTracker,
    networks_annotation,
    parse_network_status,
)

NAMESPACE = "openstack"


def network_status(*entries):
    return json.dumps(
        [{"name": name, "interface": f"net{i}", "ips": ips} for i, (name, ips) in enumerate(entries)]
    )


class TestNetworksAnnotation:
    def test_none_requested(self):
        assert networks_annotation(NAMESPACE, []) == {}

    def test_compact_json(self):
        annotation = networks_annotation(NAMESPACE, ["internalapi", "storage"])
        assert annotation == {
            NETWORKS_ANNOTATION: (
                '[{"name":"internalapi","namespace":"openstack"},'
                '{"name":"storage","namespace":"openstack"}]'
            )
        }


class TestParseNetworkStatus:
    def test_missing_annotation(self):
        assert parse_network_status(None) == {}
        assert parse_network_status("") == {}

    def test_entries(self):
        annotation = network_status(
            ("ovn-kubernetes", ["10.128.0.5"]),
            ("openstack/internalapi", ["172.17.0.30"]),
        )
        assert parse_network_status(annotation) == {
            "ovn-kubernetes": ["10.128.0.5"],
            "openstack/internalapi": ["172.17.0.30"],
        }

    def test_entry_without_ips(self):
        annotation = json.dumps([{"name": "openstack/internalapi"}])
        assert parse_network_status(annotation) == {"openstack/internalapi": []}

    @pytest.mark.parametrize(
        "annotation", ['{"name": "x"}', '[{"ips": []}]', "[1]", "not json"]
    )
    def test_malformed(self, annotation):
        with pytest.raises(ValueError):
            parse_network_status(annotation)


class TestEvaluate:
    def test_nothing_requested(self):
        result = NetworkAttachmentTracker.evaluate(NAMESPACE, [], {}, 1)
        assert result.ready
        assert result.network_attachments == {}
        assert result.missing == []

    def test_no_pods(self):
        result = NetworkAttachmentTracker.evaluate(NAMESPACE, ["internalapi"], {}, 0)
        assert not result.ready
        assert result.network_attachments == {}
        assert result.message == (
            "not all pods have interfaces with ips as configured in "
            "NetworkAttachments: [internalapi]"
        )

    def test_single_pod(self):
        pod_ips = {"nova-api-0": {"openstack/internalapi": ["10.0.0.1"]}}
        result = NetworkAttachmentTracker.evaluate(
            NAMESPACE, ["internalapi"], pod_ips, 1
        )
        assert result.ready
        assert result.network_attachments == {"openstack/internalapi": ["10.0.0.1"]}

    def test_pods_in_name_order(self):
        pod_ips = {
            "nova-api-1": {"openstack/internalapi": ["10.0.0.2"]},
            "nova-api-0": {"openstack/internalapi": ["10.0.0.1"]},
        }
        result = NetworkAttachmentTracker.evaluate(
            NAMESPACE, ["internalapi"], pod_ips, 2
        )
        assert result.ready
        assert result.network_attachments == {
            "openstack/internalapi": ["10.0.0.1", "10.0.0.2"]
        }

    def test_fewer_pods_than_ready_replicas(self):
        pod_ips = {
            "nova-api-0": {"openstack/internalapi": ["10.0.0.1"]},
            "nova-api-1": {},
        }
        result = NetworkAttachmentTracker.evaluate(
            NAMESPACE, ["internalapi"], pod_ips, 2
        )
        assert not result.ready
        assert result.missing == ["internalapi"]
        assert result.network_attachments == {"openstack/internalapi": ["10.0.0.1"]}

    def test_missing_sorted(self):
        pod_ips = {"nova-api-0": {"openstack/ctlplane": ["192.168.122.10"]}}
        result = NetworkAttachmentTracker.evaluate(
            NAMESPACE, ["storage", "internalapi", "ctlplane"], pod_ips, 1
        )
        assert result.missing == ["internalapi", "storage"]
        assert result.message.endswith("[internalapi storage]")

    def test_other_namespace_does_not_count(self):
        pod_ips = {"nova-api-0": {"other/internalapi": ["10.0.0.1"]}}
        result = NetworkAttachmentTracker.evaluate(
            NAMESPACE, ["internalapi"], pod_ips, 1
        )
        assert not result.ready
