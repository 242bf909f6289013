from marshmallow import fields, validate, validates_schema, ValidationError
from novaapi.types.base import BaseSchema
from novaapi.types.models.external_endpoint import ExternalEndpoint, ENDPOINTS


class ExternalEndpointSchema(BaseSchema):
    __model__ = ExternalEndpoint

    endpoint = fields.Str(
        data_key="endpoint", required=True, validate=validate.OneOf(ENDPOINTS)
    )
    ip_address_pool = fields.Str(data_key="ipAddressPool", required=True)
    load_balancer_ips = fields.List(
        fields.Str(), data_key="loadBalancerIPs", load_default=list
    )
    shared_ip = fields.Bool(data_key="sharedIP", load_default=True)
    shared_ip_key = fields.Str(data_key="sharedIPKey", load_default="")

    @validates_schema
    def validate_pool(self, data, **kwargs):
        """An address pool is needed to request a load balancer address."""
        if not data.get("ip_address_pool"):
            raise ValidationError(
                "ipAddressPool must not be empty", field_name="ipAddressPool"
            )
