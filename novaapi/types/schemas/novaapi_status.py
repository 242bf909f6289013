from marshmallow import fields
from novaapi.types.base import BaseSchema
from novaapi.types.models.novaapi_status import NovaAPIStatus


class NovaAPIStatusSchema(BaseSchema):
    __model__ = NovaAPIStatus

    hash = fields.Dict(
        keys=fields.Str(), values=fields.Str(), data_key="hash", load_default=dict
    )
    ready_count = fields.Int(data_key="readyCount", load_default=0)
    service_id = fields.Str(data_key="serviceID", load_default="")
    api_endpoints = fields.Dict(
        keys=fields.Str(),
        values=fields.Str(),
        data_key="apiEndpoints",
        load_default=dict,
    )
    network_attachments = fields.Dict(
        keys=fields.Str(),
        values=fields.List(fields.Str()),
        data_key="networkAttachments",
        load_default=dict,
    )
    conditions = fields.List(fields.Dict(), data_key="conditions", load_default=list)
    observed_generation = fields.Int(
        data_key="observedGeneration", allow_none=True, load_default=None
    )
