from marshmallow import fields
from novaapi.types.base import BaseSchema
from novaapi.types.models.resource_requirements import ResourceRequirements


class ResourceRequirementsSchema(BaseSchema):
    __model__ = ResourceRequirements

    requests = fields.Dict(data_key="requests", load_default=None)
    limits = fields.Dict(data_key="limits", load_default=None)
