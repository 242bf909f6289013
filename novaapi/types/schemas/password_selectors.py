from marshmallow import fields
from novaapi.types.base import BaseSchema
from novaapi.types.models.password_selectors import PasswordSelectors


class PasswordSelectorsSchema(BaseSchema):
    __model__ = PasswordSelectors

    service = fields.Str(data_key="service", load_default="NovaPassword")
    api_database = fields.Str(
        data_key="apiDatabase", load_default="NovaAPIDatabasePassword"
    )
    cell_database = fields.Str(
        data_key="cellDatabase", load_default="NovaCell0DatabasePassword"
    )
