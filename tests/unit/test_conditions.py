import pytest
from novaapi.common.models.conditions import (
    Condition,
    ConditionSet,
    DEPLOYMENT_READY,
    EXPOSE_SERVICE_READY,
    INPUT_READY,
    KEYSTONE_ENDPOINT_READY,
    NETWORK_ATTACHMENTS_READY,
    READY,
    SERVICE_CONFIG_READY,
    SUBORDINATE_KINDS,
)


def all_true():
    conditions = ConditionSet()
    for kind in SUBORDINATE_KINDS:
        conditions.mark_true(kind)
    return conditions


class TestAggregate:
    def test_empty_set_is_unknown(self):
        cond = ConditionSet().aggregate()
        assert cond.type == READY
        assert cond.status == "Unknown"
        assert cond.reason == "Init"
        assert cond.message == "Setup started"

    def test_all_true(self):
        cond = all_true().aggregate()
        assert cond.status == "True"
        assert cond.reason == "Ready"
        assert cond.message == "Setup complete"

    @pytest.mark.parametrize("kind", SUBORDINATE_KINDS)
    def test_missing_subordinate_is_unknown(self, kind):
        conditions = ConditionSet()
        for other in SUBORDINATE_KINDS:
            if other != kind:
                conditions.mark_true(other)
        assert conditions.aggregate().status == "Unknown"

    def test_unknown_wins_over_false(self):
        conditions = all_true()
        conditions.mark_error(DEPLOYMENT_READY, "boom")
        conditions.set(KEYSTONE_ENDPOINT_READY, "Unknown", "Init", "")
        assert conditions.aggregate().status == "Unknown"

    def test_false_copies_first_false_subordinate(self):
        conditions = all_true()
        conditions.mark_requested(DEPLOYMENT_READY)
        conditions.mark_error(NETWORK_ATTACHMENTS_READY, "no ips")

        cond = conditions.aggregate()

        assert cond.status == "False"
        assert cond.reason == "Requested"
        assert cond.message == "Deployment in progress"

    def test_flips_back_to_true(self):
        conditions = all_true()
        conditions.mark_error(EXPOSE_SERVICE_READY, "quota exceeded")
        assert conditions.aggregate().status == "False"
        conditions.mark_true(EXPOSE_SERVICE_READY)
        assert conditions.aggregate().status == "True"
        assert conditions.is_true(READY)


class TestMessages:
    def test_requested_input(self):
        cond = ConditionSet().mark_requested(INPUT_READY, "secret/a, secret/b")
        assert cond.message == "Input data resources missing: secret/a, secret/b"

    def test_requested_without_placeholder(self):
        cond = ConditionSet().mark_requested(KEYSTONE_ENDPOINT_READY, "ignored")
        assert cond.message == "KeystoneEndpoint not yet ready"

    def test_error(self):
        cond = ConditionSet().mark_error(SERVICE_CONFIG_READY, "bad template")
        assert cond.status == "False"
        assert cond.reason == "Error"
        assert cond.message == "Service config create error occurred bad template"

    def test_true(self):
        cond = ConditionSet().mark_true(NETWORK_ATTACHMENTS_READY)
        assert cond.message == "NetworkAttachments completed"


class TestConditionSet:
    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            ConditionSet().set("Bogus", "True", "Ready", "")
        with pytest.raises(ValueError):
            ConditionSet().get("Bogus")

    def test_invalid_status(self):
        with pytest.raises(ValueError):
            ConditionSet().set(INPUT_READY, "Maybe", "Ready", "")

    def test_display_order(self):
        conditions = ConditionSet()
        conditions.mark_true(DEPLOYMENT_READY)
        conditions.mark_true(INPUT_READY)
        conditions.aggregate()
        assert [c["type"] for c in conditions.as_list()] == [
            READY,
            DEPLOYMENT_READY,
            INPUT_READY,
        ]

    def test_transition_time_kept_on_same_status(self):
        first = ConditionSet()
        old = first.mark_requested(DEPLOYMENT_READY)
        stored = [
            dict(c, lastTransitionTime="2024-01-01T00:00:00+00:00")
            for c in first.as_list()
        ]

        second = ConditionSet.from_list(stored)
        cond = second.mark_requested(DEPLOYMENT_READY)

        assert old.last_transition_time != cond.last_transition_time
        assert cond.last_transition_time == "2024-01-01T00:00:00+00:00"

    def test_transition_time_moves_on_flip(self):
        stored = [
            Condition(
                DEPLOYMENT_READY,
                "False",
                "Requested",
                "Deployment in progress",
                "2024-01-01T00:00:00+00:00",
            ).as_dict()
        ]
        conditions = ConditionSet.from_list(stored)
        cond = conditions.mark_true(DEPLOYMENT_READY)
        assert cond.last_transition_time != "2024-01-01T00:00:00+00:00"

    def test_ready_time_kept_when_aggregated_mid_pass(self):
        stored = [
            Condition(
                READY, "True", "Ready", "Setup complete", "2024-01-01T00:00:00+00:00"
            ).as_dict()
        ]
        conditions = ConditionSet.from_list(stored)
        conditions.mark_true(INPUT_READY)
        assert conditions.aggregate().status == "Unknown"
        for kind in SUBORDINATE_KINDS:
            conditions.mark_true(kind)

        cond = conditions.aggregate()

        assert cond.status == "True"
        assert cond.last_transition_time == "2024-01-01T00:00:00+00:00"

    def test_previous_conditions_are_not_current(self):
        stored = [Condition(INPUT_READY, "True", "Ready", "Input data complete").as_dict()]
        conditions = ConditionSet.from_list(stored)
        assert INPUT_READY not in conditions
        assert conditions.get(INPUT_READY) is None
        assert conditions.previous(INPUT_READY).status == "True"
        assert len(conditions) == 0

    def test_from_list_ignores_foreign_kinds(self):
        conditions = ConditionSet.from_list(
            [{"type": "SomethingElse", "status": "True"}]
        )
        assert list(conditions) == []

    def test_same_state_ignores_time(self):
        one = all_true()
        one.aggregate()
        other = [
            Condition(c.type, c.status, c.reason, c.message, "1970-01-01T00:00:00")
            for c in one
        ]
        assert one.same_state(other)
        assert one.same_state(reversed(other))

        changed = all_true()
        changed.mark_requested(DEPLOYMENT_READY)
        changed.aggregate()
        assert not one.same_state(changed)

    def test_round_trip_keys(self):
        cond = Condition(INPUT_READY, "True", "Ready", "Input data complete", "t")
        data = cond.as_dict()
        assert data["lastTransitionTime"] == "t"
        assert Condition.from_dict(data) == cond
