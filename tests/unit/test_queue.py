from novaapi.reconcile.queue import ReconcileQueue, identity


class TestReconcileQueue:
    def test_requests_are_merged(self):
        queue = ReconcileQueue()
        key = identity("openstack", "nova-api")

        assert queue.request(key)
        assert not queue.request(key)
        assert len(queue) == 1
        assert key in queue

    def test_take_once(self):
        queue = ReconcileQueue()
        key = identity("openstack", "nova-api")
        queue.request(key)

        assert queue.take(key)
        assert not queue.take(key)
        assert len(queue) == 0

    def test_request_after_take(self):
        queue = ReconcileQueue()
        key = identity("openstack", "nova-api")
        queue.request(key)
        queue.take(key)

        assert queue.request(key)
        assert queue.take(key)

    def test_identities_are_independent(self):
        queue = ReconcileQueue()
        queue.request(identity("openstack", "a"))
        queue.request(identity("other", "a"))

        assert len(queue) == 2
        assert queue.take("other/a")
        assert "openstack/a" in queue

    def test_forget(self):
        queue = ReconcileQueue()
        queue.request("openstack/a")
        queue.forget("openstack/a")
        queue.forget("openstack/unknown")

        assert "openstack/a" not in queue
        assert not queue.take("openstack/a")
