import dataclasses
import logging
import typing

from .declarative import (
    Prop,
    Relationships,
    RelationshipType,
    Validator,
    collect_declarations,
)
from .exceptions import BindingModelValueError, InvalidDeclarationError
from .models import Topic
from .utils import (
    UNSPECIFIED,
    get_element_type,
    is_list_type,
    maybe_unspecified,
    pascal_case,
    unwrap_optional,
)

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class PropertyConfiguration:
    """
    The resolved mapping policy of a single property.
    """

    name: str
    type: typing.Any
    attribute_key: str
    default_value: typing.Any = None
    inherit_value: bool = False
    relationship_key: str = ""
    relationship_type: RelationshipType = RelationshipType.ANY
    crawl_relationships: Relationships = Relationships.NONE
    metadata_key: typing.Optional[str] = None
    attribute_filters: typing.Mapping[str, str] = dataclasses.field(default_factory=dict)
    flatten_children: bool = False
    include_nested_topics: bool = False
    disable_mapping: bool = False
    map_to_parent: bool = False
    attribute_prefix: str = ""
    validators: typing.Tuple[Validator, ...] = ()

    @property
    def is_list(self) -> bool:
        return is_list_type(self.type)

    @property
    def element_type(self) -> typing.Any:
        return get_element_type(self.type)

    @property
    def value_type(self) -> typing.Any:
        return unwrap_optional(self.type)

    def satisfies_attribute_filters(self, source: Topic) -> bool:
        return all(
            source.attributes.get_value(k, "") == v for k, v in self.attribute_filters.items()
        )

    def validate(self, owner: type, value: typing.Any) -> None:
        for validator in self.validators:
            detail = validator(value)
            if detail is not None:
                raise BindingModelValueError(owner, self.name, detail)


def resolve(name: str, hint: typing.Any, prop: Prop) -> PropertyConfiguration:
    attribute_key = maybe_unspecified(prop.key, pascal_case(name))
    map_to_parent = bool(maybe_unspecified(prop.map_to_parent, False))
    if prop.attribute_prefix is not UNSPECIFIED and not map_to_parent:
        raise InvalidDeclarationError(f"attribute_prefix is only meaningful along with map_to_parent ({name})")
    return PropertyConfiguration(
        name=name,
        type=hint,
        attribute_key=attribute_key,
        default_value=maybe_unspecified(prop.default, None),
        inherit_value=bool(maybe_unspecified(prop.inherit, False)),
        relationship_key=maybe_unspecified(prop.relationship_key, attribute_key),
        relationship_type=maybe_unspecified(prop.relationship_type, RelationshipType.ANY),
        crawl_relationships=maybe_unspecified(prop.follow, Relationships.NONE),
        metadata_key=maybe_unspecified(prop.metadata, None),
        attribute_filters=dict(maybe_unspecified(prop.filters, {})),
        flatten_children=bool(maybe_unspecified(prop.flatten, False)),
        include_nested_topics=bool(maybe_unspecified(prop.include_nested, False)),
        disable_mapping=bool(maybe_unspecified(prop.disable_mapping, False)),
        map_to_parent=map_to_parent,
        attribute_prefix=maybe_unspecified(prop.attribute_prefix, attribute_key) if map_to_parent else "",
        validators=tuple(maybe_unspecified(prop.validators, ())),
    )


_configurations: typing.Dict[type, typing.Mapping[str, PropertyConfiguration]] = {}


def get_property_configurations(type_: type) -> typing.Mapping[str, PropertyConfiguration]:
    """
    Returns the resolved configurations of every mappable property of
    ``type_``, in declaration order.  The result is computed once per type.

    :param type type_: a view model or binding model type.
    :return: a mapping of property names to their configurations.
    """
    try:
        return _configurations[type_]
    except KeyError:
        pass
    hints, props = collect_declarations(type_)
    configurations = {name: resolve(name, hint, props[name]) for name, hint in hints.items()}
    logger.debug("resolved %d property configurations for %s", len(configurations), type_.__name__)
    return _configurations.setdefault(type_, configurations)
