from typing import Dict, Iterable

NOVA_DOMAIN = "nova.openstack.org/"
KUBERNETES_DOMAIN = "app.kubernetes.io/"

# Label values are at most 63 characters and must end alphanumeric
MAX_LABEL_VALUE_LEN = 63


class Labels:
    """Labels put on every child object of a NovaAPI.

    The `kind` and `owner` labels together select all children of one NovaAPI
    and are what deletion and the pod watch rely on.
    """

    NOVA_KIND_LABEL = NOVA_DOMAIN + "kind"
    NOVA_OWNER_LABEL = NOVA_DOMAIN + "owner"
    NOVA_COMPONENT_TYPE_LABEL = NOVA_DOMAIN + "component-type"

    KUBERNETES_NAME_LABEL = KUBERNETES_DOMAIN + "name"
    KUBERNETES_INSTANCE_LABEL = KUBERNETES_DOMAIN + "instance"
    KUBERNETES_PART_OF_LABEL = KUBERNETES_DOMAIN + "part-of"
    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    APPLICATION_NAME = "nova"

    OWNER_SELECTOR_LABELS = (NOVA_KIND_LABEL, NOVA_OWNER_LABEL)

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = dict(labels or {})

    @staticmethod
    def valid_label_value(value: str) -> str:
        """Truncate `value` into a valid label value."""
        if not value:
            return ""
        return value[:MAX_LABEL_VALUE_LEN].rstrip(".-_")

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels)
        return self

    def include_nova_component_type(self, component_type: str) -> "Labels":
        return self.update({self.NOVA_COMPONENT_TYPE_LABEL: component_type})

    def select(self, keys: Iterable[str]) -> "Labels":
        """A new set holding only the given keys, where present."""
        return Labels({k: self._labels[k] for k in keys if k in self._labels})

    def owner_selector(self) -> "Labels":
        return self.select(self.OWNER_SELECTOR_LABELS)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._labels)

    def as_str(self) -> str:
        """Render as a label selector string."""
        return ",".join(f"{k}={v}" for k, v in self._labels.items())

    def __repr__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def generate_default_labels(
        cls,
        resource_name: str,
        resource_kind: str,
        component_type: str,
        managed_by: str,
    ) -> "Labels":
        owner = cls.valid_label_value(resource_name)
        return cls(
            {
                cls.NOVA_KIND_LABEL: resource_kind,
                cls.NOVA_OWNER_LABEL: owner,
                cls.NOVA_COMPONENT_TYPE_LABEL: component_type,
                cls.KUBERNETES_NAME_LABEL: component_type,
                cls.KUBERNETES_INSTANCE_LABEL: owner,
                cls.KUBERNETES_PART_OF_LABEL: cls.valid_label_value(
                    f"{cls.APPLICATION_NAME}-{resource_name}"
                ),
                cls.KUBERNETES_MANAGED_BY_LABEL: managed_by,
            }
        )
