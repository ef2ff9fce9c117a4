import logging
import typing

from .configuration import PropertyConfiguration, get_property_configurations
from .declarative import Relationships, RelationshipType
from .defaults import DEFAULT_SETTINGS, BasicTypeConverter, DefaultBasicTypeConverterImpl, MappingSettings
from .exceptions import DuplicateKeyError
from .interfaces import TopicMappingService, TopicRepository
from .lookup import TypeLookupService
from .models import Topic
from .utils import get_concrete_list_type, snake_case

logger = logging.getLogger(__name__)

T = typing.TypeVar("T")


class MappingContext:
    """
    The identity cache of a single mapping call.  A topic reachable through
    several paths is mapped once, and the same instance is handed out on
    every subsequent visit.
    """

    _mapped: typing.Dict[typing.Hashable, typing.Any]

    @staticmethod
    def _identity(topic: Topic) -> typing.Hashable:
        # unsaved topics share the id -1
        return topic.id if topic.id > 0 else ("transient", id(topic))

    def get(self, topic: Topic) -> typing.Optional[typing.Any]:
        return self._mapped.get(self._identity(topic))

    def mark_mapped(self, topic: Topic, target: typing.Any) -> None:
        self._mapped[self._identity(topic)] = target

    def __contains__(self, topic: Topic) -> bool:
        return self._identity(topic) in self._mapped

    def __init__(self):
        self._mapped = {}


class DefaultTopicMappingService(TopicMappingService):
    """
    Maps topics to view models by convention.

    Each annotated property of the view model is populated from the topic:
    scalars from topic members or attributes, list-shaped properties from
    children, relationships, nested topics or incoming relationships, a
    ``parent`` property from the parent topic and any other object-typed
    property from the topic referenced by the ``{Property}Id`` attribute.
    """

    repository: TopicRepository
    type_lookup: TypeLookupService
    converter: BasicTypeConverter
    settings: MappingSettings

    def map(self, topic: typing.Optional[Topic], relationships: Relationships = Relationships.ALL) -> typing.Any:
        if topic is None or topic.is_disabled:
            return None
        return self._map(MappingContext(), topic, None, self.type_lookup.lookup(topic.content_type), relationships, 0)

    def map_as(
        self,
        topic: typing.Optional[Topic],
        type_: typing.Type[T],
        relationships: Relationships = Relationships.ALL,
    ) -> typing.Optional[T]:
        if topic is None or topic.is_disabled:
            return None
        return self._map(MappingContext(), topic, None, type_, relationships, 0)

    def map_to(self, topic: typing.Optional[Topic], target: T, relationships: Relationships = Relationships.ALL) -> T:
        if topic is None or topic.is_disabled:
            return target
        return self._map(MappingContext(), topic, target, type(target), relationships, 0)

    def _map(
        self,
        ctx: MappingContext,
        topic: Topic,
        target: typing.Any,
        type_: type,
        relationships: Relationships,
        depth: int,
    ) -> typing.Any:
        cached = ctx.get(topic)
        if cached is not None:
            return cached
        if target is None:
            target = type_()
        ctx.mark_mapped(topic, target)
        self._populate(ctx, topic, target, relationships, depth, "")
        return target

    def _populate(
        self,
        ctx: MappingContext,
        topic: Topic,
        target: typing.Any,
        relationships: Relationships,
        depth: int,
        attribute_prefix: str,
    ) -> None:
        for config in get_property_configurations(type(target)).values():
            if config.disable_mapping:
                continue
            self._set_property(ctx, topic, target, config, relationships, depth, attribute_prefix)
            config.validate(type(target), getattr(target, config.name, None))

    def _set_property(
        self,
        ctx: MappingContext,
        topic: Topic,
        target: typing.Any,
        config: PropertyConfiguration,
        relationships: Relationships,
        depth: int,
        attribute_prefix: str,
    ) -> None:
        key = attribute_prefix + config.attribute_key
        value_type = config.value_type
        if config.map_to_parent:
            child = getattr(target, config.name, None)
            if child is None:
                child = value_type()
                setattr(target, config.name, child)
            self._populate(ctx, topic, child, relationships, depth, attribute_prefix + config.attribute_prefix)
        elif key == "Id":
            self._set_value(target, config, topic.id)
        elif self.converter.is_scalar(value_type):
            self._set_scalar_value(topic, target, config, key)
        elif config.is_list:
            self._set_collection(ctx, topic, target, config, relationships, depth)
        elif key == "Parent":
            if relationships & Relationships.PARENTS and topic.parent is not None:
                self._set_related(ctx, topic.parent, target, config, depth)
        else:
            reference_id = topic.attributes.get_integer(key + self.settings.reference_suffix, 0)
            if reference_id > 0 and relationships & Relationships.REFERENCES:
                referenced = self.repository.load(reference_id)
                if referenced is None:
                    logger.debug("%s refers to topic %d, which does not exist", topic, reference_id)
                    return
                self._set_related(ctx, referenced, target, config, depth)

    def _get_scalar_value(self, topic: Topic, config: PropertyConfiguration, key: str) -> typing.Any:
        name = snake_case(key)
        getter = getattr(topic, "get_" + name, None)
        if callable(getter):
            value = getter()
            if value is not None:
                return value
        value = getattr(topic, name, None)
        if value is not None and not callable(value) and self.converter.is_scalar(type(value)):
            return value
        return topic.attributes.get_value(key, None, inherit_from_parent=config.inherit_value)

    def _set_scalar_value(self, topic: Topic, target: typing.Any, config: PropertyConfiguration, key: str) -> None:
        value = self._get_scalar_value(topic, config, key)
        if value is None or value == "":
            if config.default_value is not None:
                setattr(target, config.name, config.default_value)
            return
        self._set_value(target, config, value)

    def _set_value(self, target: typing.Any, config: PropertyConfiguration, value: typing.Any) -> None:
        value_type = config.value_type
        if not (isinstance(value_type, type) and isinstance(value, value_type)) and value_type is not typing.Any:
            try:
                if not isinstance(value, str):
                    value = self.converter.convert_to_attribute_value(value)
                value = self.converter.convert_from_attribute_value(value_type, value)
            except (TypeError, ValueError) as e:
                logger.debug("skipping %s.%s: %s", type(target).__name__, config.name, e)
                return
        setattr(target, config.name, value)

    def _get_source_collection(
        self, topic: Topic, config: PropertyConfiguration, relationships: Relationships
    ) -> typing.List[Topic]:
        key = config.relationship_key
        kind = config.relationship_type

        def eligible(candidate: RelationshipType) -> bool:
            return kind is RelationshipType.ANY or kind is candidate

        sources: typing.List[Topic] = []
        if (key == "Children" or kind is RelationshipType.CHILDREN) and relationships & Relationships.CHILDREN:
            sources = list(topic.children)
        if not sources and eligible(RelationshipType.RELATIONSHIP) and relationships & Relationships.RELATIONSHIPS:
            sources = topic.relationships.get_topics(key)
        if not sources and eligible(RelationshipType.NESTED_TOPICS):
            container = topic.children.get(key)
            if container is not None:
                sources = list(container.children)
        if (
            not sources
            and eligible(RelationshipType.INCOMING_RELATIONSHIP)
            and relationships & Relationships.INCOMING_RELATIONSHIPS
        ):
            sources = topic.incoming_relationships.get_topics(key)
        if not sources and config.metadata_key is not None:
            lookup_list = self.repository.load(self.settings.metadata_path_template.format(key=config.metadata_key))
            if lookup_list is not None:
                sources = list(lookup_list.children)
        if config.flatten_children:
            sources = list(self._flatten(sources, config.include_nested_topics))
        return sources

    def _flatten(self, sources: typing.Iterable[Topic], include_nested: bool) -> typing.Iterator[Topic]:
        for source in sources:
            if source.is_disabled:
                continue
            if source.content_type == self.settings.nested_topic_content_type and not include_nested:
                continue
            yield source
            yield from self._flatten(source.children, include_nested)

    def _set_collection(
        self,
        ctx: MappingContext,
        topic: Topic,
        target: typing.Any,
        config: PropertyConfiguration,
        relationships: Relationships,
        depth: int,
    ) -> None:
        sources = self._get_source_collection(topic, config, relationships)
        collection = getattr(target, config.name, None)
        if collection is None:
            collection = get_concrete_list_type(config.type)()
            setattr(target, config.name, collection)
        element_type = config.element_type
        for source in sources:
            if source.is_disabled or not config.satisfies_attribute_filters(source):
                logger.debug("%s excluded from %s.%s", source, type(target).__name__, config.name)
                continue
            if isinstance(element_type, type) and issubclass(element_type, Topic):
                item: typing.Any = source
            else:
                item = self._map_related(ctx, source, element_type, config.crawl_relationships, depth)
            if item is None or not self._is_assignable(item, element_type):
                continue
            try:
                collection.append(item)
            except DuplicateKeyError as e:
                logger.debug("%s.%s: %s", type(target).__name__, config.name, e)

    def _set_related(
        self, ctx: MappingContext, source: Topic, target: typing.Any, config: PropertyConfiguration, depth: int
    ) -> None:
        value_type = config.value_type
        if isinstance(value_type, type) and issubclass(value_type, Topic):
            item: typing.Any = source
        else:
            item = self._map_related(ctx, source, value_type, config.crawl_relationships, depth)
        if item is not None and self._is_assignable(item, value_type):
            setattr(target, config.name, item)

    def _map_related(
        self,
        ctx: MappingContext,
        source: Topic,
        declared_type: typing.Any,
        relationships: Relationships,
        depth: int,
    ) -> typing.Any:
        if source.is_disabled:
            return None
        max_depth = self.settings.max_relationship_depth
        if max_depth is not None and depth >= max_depth:
            logger.debug("%s lies beyond the maximum relationship depth (%d)", source, max_depth)
            return None
        return self._map(ctx, source, None, self._resolve_type(source, declared_type), relationships, depth + 1)

    def _resolve_type(self, source: Topic, declared_type: typing.Any) -> type:
        resolved = self.type_lookup.lookup(source.content_type)
        if (
            source.content_type not in self.type_lookup
            and isinstance(declared_type, type)
            and declared_type is not object
        ):
            return declared_type
        return resolved

    @staticmethod
    def _is_assignable(item: typing.Any, declared_type: typing.Any) -> bool:
        if declared_type is typing.Any or not isinstance(declared_type, type):
            return True
        return isinstance(item, declared_type)

    def __init__(
        self,
        repository: TopicRepository,
        type_lookup: typing.Optional[TypeLookupService] = None,
        converter: typing.Optional[BasicTypeConverter] = None,
        settings: MappingSettings = DEFAULT_SETTINGS,
    ):
        self.repository = repository
        self.settings = settings
        self.type_lookup = type_lookup if type_lookup is not None else TypeLookupService(suffix=settings.view_model_suffix)
        self.converter = converter if converter is not None else DefaultBasicTypeConverterImpl()
