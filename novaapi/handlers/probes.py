import datetime
import kopf
from novaapi.handlers.novaapi import reconciliation_queue


# Liveness probe
@kopf.on.probe(id="now")
def get_current_timestamp(**kwargs):
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@kopf.on.probe(id="pendingReconciliations")
def get_pending_reconciliations(**kwargs):
    return len(reconciliation_queue)
