from types import SimpleNamespace
from typing import Any, Dict, Mapping
from marshmallow import INCLUDE, EXCLUDE, Schema, post_load

JSON = Dict[str, Any]
MAX_REPR_LEN = 60


def _to_plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.as_dict()
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _to_plain(v) for k, v in value.items()}
    return value


class BaseModel(SimpleNamespace):
    """Attribute access over a loaded section of a NovaAPI resource.

    Attribute names are the snake_case names of the schema fields, not the
    camelCase keys of the resource.
    """

    def __repr__(self) -> str:
        repr_ = super().__repr__()
        if len(repr_) > MAX_REPR_LEN:
            return repr_[:MAX_REPR_LEN] + " ...)"
        return repr_

    def __contains__(self, key: str) -> bool:
        return key in vars(self)

    def get(self, key: str, default: Any = None) -> Any:
        return vars(self).get(key, default)

    def as_dict(self) -> JSON:
        """Plain dicts and lists, nested models included."""
        return {key: _to_plain(value) for key, value in vars(self).items()}


class BaseSchema(Schema):
    """Loads resource sections into `__model__` instances."""

    __model__: Any = BaseModel

    class Meta:
        unknown = INCLUDE
        ordered = True

    @post_load
    def make_object(self, data: JSON, **kwargs: Any) -> "__model__":
        return self.__model__(**data)

    @classmethod
    def load_lenient(cls, data: Mapping) -> Any:
        """Load a section, dropping fields this operator does not know about."""
        return cls().load(dict(data or {}), unknown=EXCLUDE)
