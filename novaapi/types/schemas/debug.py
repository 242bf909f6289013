from marshmallow import fields
from novaapi.types.base import BaseSchema
from novaapi.types.models.debug import NovaAPIDebug


class NovaAPIDebugSchema(BaseSchema):
    __model__ = NovaAPIDebug

    stop_service = fields.Bool(data_key="stopService", load_default=False)
