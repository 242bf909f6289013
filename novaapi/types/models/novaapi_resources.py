class NovaAPIResources:
    """Encapsulates the naming scheme used for the resources which the operator manages
    for a NovaAPI."""

    SERVICE_NAME = "nova"

    @classmethod
    def component_name(self, name: str):
        """Returns the name of the NovaAPI workload for a resource of the given name."""
        return name

    @classmethod
    def stateful_set_name(self, name: str):
        return self.component_name(name)

    @classmethod
    def config_data_name(self, name: str):
        """Returns the name of the ConfigMap holding the rendered config documents."""
        return f"{name}-config-data"

    @classmethod
    def service_name(self, endpoint: str):
        """Returns the name of the service exposing the given logical endpoint."""
        return f"{self.SERVICE_NAME}-{endpoint}"

    @classmethod
    def route_name(self, endpoint: str):
        return self.service_name(endpoint)

    @classmethod
    def qualified_service_name(self, endpoint: str, namespace: str):
        """Returns qualified name of the service which works across different namespaces."""
        return f"{self.service_name(endpoint)}.{namespace}.svc"

    @classmethod
    def owner_token(self, name: str):
        """Finalizer token recorded on the shared endpoint catalog entry."""
        return self.component_name(name)
