from novaapi.types.base import BaseModel


class PasswordSelectors(BaseModel):
    """Names of the fields looked up in the service secret."""

    service: str
    api_database: str
    cell_database: str

    def fields(self):
        """Required secret fields in a fixed order."""
        return [self.service, self.api_database, self.cell_database]
