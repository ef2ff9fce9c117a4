import abc
import collections.abc
import dataclasses
import enum
import typing

from .exceptions import InvalidDeclarationError
from .utils import UNSPECIFIED, UnspecifiedType


class Relationships(enum.IntFlag):
    """
    The relationships a mapping pass is permitted to follow.
    Nested topics are always followed and thus have no flag of their own.
    """

    NONE = 0
    PARENTS = 1
    CHILDREN = 2
    RELATIONSHIPS = 4
    INCOMING_RELATIONSHIPS = 8
    REFERENCES = 16
    ALL = PARENTS | CHILDREN | RELATIONSHIPS | INCOMING_RELATIONSHIPS | REFERENCES


class RelationshipType(enum.Enum):
    ANY = "Any"
    CHILDREN = "Children"
    RELATIONSHIP = "Relationship"
    NESTED_TOPICS = "NestedTopics"
    INCOMING_RELATIONSHIP = "IncomingRelationship"


class Validator(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def __call__(self, value: typing.Any) -> typing.Optional[str]:
        """
        Checks a value bound to a property.

        :param Any value: the value.
        :return: a description of the problem, or None if the value is acceptable.
        """
        ...  # pragma: nocover


class Required(Validator):
    def __call__(self, value: typing.Any) -> typing.Optional[str]:
        if value is None or value == "":
            return "a value is required"
        return None

    def __repr__(self) -> str:
        return "Required()"


class Range(Validator):
    minimum: typing.Optional[typing.Any]
    maximum: typing.Optional[typing.Any]

    def __call__(self, value: typing.Any) -> typing.Optional[str]:
        if value is None:
            return None
        if self.minimum is not None and value < self.minimum:
            return f"{value!r} is less than {self.minimum!r}"
        if self.maximum is not None and value > self.maximum:
            return f"{value!r} is greater than {self.maximum!r}"
        return None

    def __repr__(self) -> str:
        return f"Range(minimum={self.minimum!r}, maximum={self.maximum!r})"

    def __init__(self, minimum: typing.Optional[typing.Any] = None, maximum: typing.Optional[typing.Any] = None):
        self.minimum = minimum
        self.maximum = maximum


@dataclasses.dataclass
class Prop:
    """
    Directives for a single property of a view model or a binding model.
    Anything left unspecified keeps its default.
    """

    key: typing.Union[UnspecifiedType, str] = UNSPECIFIED
    default: typing.Any = UNSPECIFIED
    inherit: typing.Union[UnspecifiedType, bool] = UNSPECIFIED
    relationship_key: typing.Union[UnspecifiedType, str] = UNSPECIFIED
    relationship_type: typing.Union[UnspecifiedType, RelationshipType] = UNSPECIFIED
    follow: typing.Union[UnspecifiedType, Relationships] = UNSPECIFIED
    metadata: typing.Union[UnspecifiedType, str] = UNSPECIFIED
    filters: typing.Union[UnspecifiedType, typing.Mapping[str, str]] = UNSPECIFIED
    flatten: typing.Union[UnspecifiedType, bool] = UNSPECIFIED
    include_nested: typing.Union[UnspecifiedType, bool] = UNSPECIFIED
    disable_mapping: typing.Union[UnspecifiedType, bool] = UNSPECIFIED
    map_to_parent: typing.Union[UnspecifiedType, bool] = UNSPECIFIED
    attribute_prefix: typing.Union[UnspecifiedType, str] = UNSPECIFIED
    validators: typing.Union[UnspecifiedType, typing.Sequence[Validator]] = UNSPECIFIED

    def merge(self, other: "Prop") -> "Prop":
        values = {}
        for field in dataclasses.fields(self):
            mine = getattr(self, field.name)
            theirs = getattr(other, field.name)
            if theirs is UNSPECIFIED:
                values[field.name] = mine
            elif mine is UNSPECIFIED:
                values[field.name] = theirs
            elif field.name == "filters":
                values[field.name] = {**mine, **theirs}
            elif field.name == "validators":
                values[field.name] = tuple(mine) + tuple(theirs)
            else:
                values[field.name] = theirs
        return Prop(**values)


def handle_meta(type_: type, meta: typing.Any) -> typing.Dict[str, Prop]:
    result: typing.Dict[str, Prop] = {}
    for k, v in vars(meta).items():
        if k.startswith("__"):
            continue
        if k == "properties":
            if not isinstance(v, collections.abc.Mapping):
                raise InvalidDeclarationError(f"{type_.__name__}.Meta.properties must be a mapping")
            for name, prop in v.items():
                if isinstance(prop, Prop):
                    result[name] = prop
                elif isinstance(prop, (list, tuple)):
                    merged = Prop()
                    for p in prop:
                        if not isinstance(p, Prop):
                            raise InvalidDeclarationError(
                                f"{type_.__name__}.Meta.properties[{name!r}] contains {p!r}, which is not a Prop"
                            )
                        merged = merged.merge(p)
                    result[name] = merged
                else:
                    raise InvalidDeclarationError(
                        f"{type_.__name__}.Meta.properties[{name!r}] must be a Prop or a sequence of them"
                    )
        else:
            raise InvalidDeclarationError(f"unknown attribute {k} in {type_.__name__}.Meta")
    return result


def collect_declarations(
    type_: type,
) -> typing.Tuple[typing.Dict[str, typing.Any], typing.Dict[str, Prop]]:
    """
    Collects the annotated properties of ``type_`` and their directives.

    Directives are read from ``typing.Annotated`` metadata and from an
    inner ``Meta`` class carrying a ``properties`` mapping; the latter wins
    when both are given.

    :param type type_: the view model or binding model type.
    :return: a tuple of the type hints (keyed by property name) and the directives.
    """
    try:
        hints = typing.get_type_hints(type_, include_extras=True)
    except NameError as e:
        raise InvalidDeclarationError(f"unresolvable annotation in {type_.__name__}: {e}") from e

    props: typing.Dict[str, Prop] = {}
    result_hints: typing.Dict[str, typing.Any] = {}
    for name, hint in hints.items():
        if name.startswith("_") or typing.get_origin(hint) is typing.ClassVar:
            continue
        prop = Prop()
        if typing.get_origin(hint) is typing.Annotated:
            for item in hint.__metadata__:
                if isinstance(item, Prop):
                    prop = prop.merge(item)
            hint = typing.get_args(hint)[0]
        result_hints[name] = hint
        props[name] = prop

    for klass in reversed(type_.__mro__):
        meta = klass.__dict__.get("Meta")
        if meta is None:
            continue
        for name, prop in handle_meta(klass, meta).items():
            if name not in props:
                raise InvalidDeclarationError(f"{type_.__name__} has no annotated property named {name}")
            props[name] = props[name].merge(prop)
    return result_hints, props
