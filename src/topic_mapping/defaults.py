import abc
import dataclasses
import datetime
import decimal
import enum
import typing

from .metadata import REFERENCE_SUFFIX

Tn = typing.TypeVar("Tn")

SCALAR_TYPES: typing.Tuple[type, ...] = (
    str,
    bool,
    int,
    float,
    decimal.Decimal,
    datetime.datetime,
    datetime.date,
    enum.Enum,
)


@dataclasses.dataclass(frozen=True)
class MappingSettings:
    reference_suffix: str = REFERENCE_SUFFIX
    nested_topic_content_type: str = "List"
    metadata_path_template: str = "Root:Configuration:Metadata:{key}:LookupList"
    view_model_suffix: str = "ViewModel"
    # None leaves relationship traversal bounded only by the identity cache
    max_relationship_depth: typing.Optional[int] = None
    hierarchical_root_key: str = "Root:Web"
    hierarchical_from_root: int = 2


DEFAULT_SETTINGS = MappingSettings()


class BasicTypeConverter(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def is_scalar(self, typ: typing.Any) -> bool:
        ...  # pragma: nocover

    @abc.abstractmethod
    def convert_to_attribute_value(self, value: typing.Any) -> typing.Optional[str]:
        ...  # pragma: nocover

    @abc.abstractmethod
    def convert_from_attribute_value(self, typ: typing.Type[Tn], value: typing.Optional[str]) -> typing.Optional[Tn]:
        ...  # pragma: nocover


class DefaultBasicTypeConverterImpl(BasicTypeConverter):
    def is_scalar(self, typ: typing.Any) -> bool:
        return isinstance(typ, type) and issubclass(typ, SCALAR_TYPES)

    def convert_to_attribute_value(self, value: typing.Any) -> typing.Optional[str]:
        if value is None:
            return None
        elif isinstance(value, bool):
            return "1" if value else "0"
        elif isinstance(value, enum.Enum):
            return str(value.value)
        elif isinstance(value, (datetime.datetime, datetime.date)):
            return value.isoformat()
        return str(value)

    def convert_from_attribute_value(self, typ: typing.Type[Tn], value: typing.Optional[str]) -> typing.Optional[Tn]:
        if value is None:
            return None
        elif typ is typing.Any or typ is object or issubclass(typ, str):
            return typing.cast(Tn, value)
        elif issubclass(typ, bool):
            if value in ("1", "true", "True"):
                return typing.cast(Tn, True)
            elif value in ("0", "false", "False", ""):
                return typing.cast(Tn, False)
            raise ValueError(f"{value!r} is not a boolean")
        elif issubclass(typ, enum.Enum):
            for e in typ:
                if str(e.value) == value or e.name == value:
                    return typing.cast(Tn, e)
            raise ValueError(f"{value} is not a valid name for the enum {typ}")
        elif issubclass(typ, datetime.datetime):
            return typing.cast(Tn, datetime.datetime.fromisoformat(value))
        elif issubclass(typ, datetime.date):
            return typing.cast(Tn, datetime.date.fromisoformat(value))
        elif issubclass(typ, decimal.Decimal):
            try:
                return typing.cast(Tn, decimal.Decimal(value))
            except decimal.InvalidOperation as e:
                raise ValueError(f"{value!r} is not a decimal") from e
        elif issubclass(typ, (int, float)):
            return typing.cast(Tn, typ(value))  # type: ignore
        raise TypeError(f"failed to convert an attribute value to {typ}")
