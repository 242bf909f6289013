from marshmallow import fields
from novaapi.types.base import BaseSchema
from novaapi.types.models.probe import Probe


class ProbeSchema(BaseSchema):
    __model__ = Probe

    failure_threshold = fields.Int(data_key="failureThreshold", load_default=3)
    initial_delay_seconds = fields.Int(data_key="initialDelaySeconds", load_default=5)
    period_seconds = fields.Int(data_key="periodSeconds", load_default=30)
    success_threshold = fields.Int(data_key="successThreshold", load_default=1)
    timeout_seconds = fields.Int(data_key="timeoutSeconds", load_default=5)
