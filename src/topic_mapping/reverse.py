import logging
import typing

from .configuration import PropertyConfiguration, get_property_configurations
from .defaults import DEFAULT_SETTINGS, BasicTypeConverter, DefaultBasicTypeConverterImpl, MappingSettings
from .exceptions import MappingModelValidationError
from .factory import TopicFactory
from .interfaces import (
    RelatedTopicBindingModel,
    ReverseTopicMappingService,
    TopicBindingModel,
    TopicRepository,
)
from .metadata import ContentTypeDescriptor, ModelType
from .models import Topic
from .utils import drain
from .validation import INTRINSIC_ATTRIBUTE_KEYS, BindingModelValidator

logger = logging.getLogger(__name__)


class DefaultReverseTopicMappingService(ReverseTopicMappingService):
    """
    Maps binding models onto topics, guided by the content type descriptors
    the repository exposes.  Mapped topics are never saved; persisting them
    is up to the caller.
    """

    repository: TopicRepository
    converter: BasicTypeConverter
    settings: MappingSettings

    async def map(self, source: TopicBindingModel, target: typing.Optional[Topic] = None) -> Topic:
        if not source.key:
            raise MappingModelValidationError(
                f"the {type(source).__name__} binding model must carry a key", type(source), "key"
            )
        if not source.content_type:
            raise MappingModelValidationError(
                f"the {type(source).__name__} binding model must carry a content type",
                type(source),
                "content_type",
            )
        if target is None:
            target = TopicFactory.create(source.key, source.content_type)

        descrs = self.repository.get_content_type_descriptors()
        if source.content_type not in descrs:
            raise MappingModelValidationError(
                f'the binding model "{source.key}" has the content type {source.content_type}, which does not exist',
                type(source),
            )
        if source.content_type != target.content_type:
            raise MappingModelValidationError(
                f'the binding model "{source.key}" has the content type {source.content_type}, while the target '
                f'"{target.key}" has the content type {target.content_type}; content types cannot be changed by mapping',
                type(source),
            )
        if source.key and source.key != target.key:
            raise MappingModelValidationError(
                f'the binding model has the key "{source.key}", while the target has the key "{target.key}"; '
                "keys cannot be changed by mapping",
                type(source),
            )

        content_type = descrs[target.content_type]
        self._check(source, content_type, "")
        await self._map(source, target, content_type, "")
        return target

    def _check(self, source: typing.Any, content_type: ContentTypeDescriptor, attribute_prefix: str) -> None:
        properties = get_property_configurations(type(source))
        BindingModelValidator.validate(type(source), properties, content_type, attribute_prefix, self.settings)
        self._check_values(source, properties)
        for config in properties.values():
            if config.disable_mapping:
                continue
            if config.map_to_parent:
                child = getattr(source, config.name, None)
                if child is not None:
                    self._check(child, content_type, attribute_prefix + config.attribute_prefix)
            elif config.is_list:
                self._check_unique_keys(source, config)

    def _check_unique_keys(self, source: typing.Any, config: PropertyConfiguration) -> None:
        seen: typing.Set[str] = set()
        for item in getattr(source, config.name, None) or ():
            if not isinstance(item, TopicBindingModel):
                continue
            if item.key in seen:
                raise MappingModelValidationError(
                    f'the key "{item.key}" occurs more than once in {type(source).__name__}.{config.name}',
                    type(source),
                    config.name,
                )
            seen.add(item.key)

    async def _map(
        self,
        source: typing.Any,
        target: Topic,
        content_type: ContentTypeDescriptor,
        attribute_prefix: str,
    ) -> None:
        properties = get_property_configurations(type(source))
        async for _ in drain(
            self._set_property(source, target, content_type, config, attribute_prefix)
            for config in properties.values()
        ):
            pass

    def _check_values(self, source: typing.Any, properties: typing.Mapping[str, PropertyConfiguration]) -> None:
        for config in properties.values():
            if config.disable_mapping:
                continue
            config.validate(type(source), getattr(source, config.name, None))

    async def _set_property(
        self,
        source: typing.Any,
        target: Topic,
        content_type: ContentTypeDescriptor,
        config: PropertyConfiguration,
        attribute_prefix: str,
    ) -> None:
        if config.disable_mapping:
            return
        if not attribute_prefix and config.attribute_key in INTRINSIC_ATTRIBUTE_KEYS:
            return
        if config.map_to_parent:
            child = getattr(source, config.name, None)
            if child is not None:
                await self._map(child, target, content_type, attribute_prefix + config.attribute_prefix)
            return

        key = attribute_prefix + config.attribute_key
        attribute_descr = content_type.attribute_descriptors.find(key)
        if attribute_descr is None:
            raise MappingModelValidationError(
                f"the attribute {key} is not declared by the {content_type.key} content type",
                type(source),
                config.name,
            )
        model_type = attribute_descr.model_type
        if model_type is ModelType.SCALAR_VALUE:
            self._set_scalar_value(source, target, config, key)
        elif model_type is ModelType.RELATIONSHIP:
            self._set_relationships(source, target, config, key)
        elif model_type is ModelType.NESTED_TOPIC:
            await self._set_nested_topics(source, target, config, key)
        elif model_type is ModelType.REFERENCE:
            self._set_reference(source, target, config, key)

    def _set_scalar_value(self, source: typing.Any, target: Topic, config: PropertyConfiguration, key: str) -> None:
        value = self.converter.convert_to_attribute_value(getattr(source, config.name, None))
        if not value and config.default_value is not None:
            value = self.converter.convert_to_attribute_value(config.default_value)
        target.attributes.set_value(key, value)

    def _set_relationships(self, source: typing.Any, target: Topic, config: PropertyConfiguration, key: str) -> None:
        target.relationships.clear(key)
        related: typing.Iterable[RelatedTopicBindingModel] = getattr(source, config.name, None) or ()
        for item in related:
            topic = self.repository.load(item.unique_key) if item.unique_key else None
            if topic is None:
                logger.debug("the relationship %s of %s refers to %r, which does not exist", key, target, item.unique_key)
                continue
            target.relationships.set_topic(key, topic)

    async def _set_nested_topics(
        self, source: typing.Any, target: Topic, config: PropertyConfiguration, key: str
    ) -> None:
        container = target.children.get(key)
        if container is None:
            container = TopicFactory.create(key, self.settings.nested_topic_content_type, target)
            container.is_hidden = True
        await self._populate_target_collection(getattr(source, config.name, None) or (), container)

    async def _populate_target_collection(
        self, sources: typing.Iterable[TopicBindingModel], container: Topic
    ) -> None:
        sources = list(sources)
        source_keys = {s.key for s in sources}
        # orphans go before any mapping task touches the container
        for child in container.children:
            if child.key not in source_keys:
                container.children.remove(child)

        async def _map_item(item: TopicBindingModel) -> Topic:
            return await self.map(item, container.children.get(item.key))

        mapped = drain(_map_item(s) for s in sources)
        try:
            async for topic in mapped:
                if topic not in container.children:
                    container.children.add(topic)
        finally:
            await mapped.aclose()

    def _set_reference(self, source: typing.Any, target: Topic, config: PropertyConfiguration, key: str) -> None:
        reference: typing.Optional[RelatedTopicBindingModel] = getattr(source, config.name, None)
        if reference is None or not reference.unique_key:
            return
        topic = self.repository.load(reference.unique_key)
        if topic is None or topic.id <= 0:
            logger.debug("the reference %s of %s refers to %r, which cannot be resolved", key, target, reference.unique_key)
            return
        target.attributes.set_integer(key, topic.id)

    def __init__(
        self,
        repository: TopicRepository,
        converter: typing.Optional[BasicTypeConverter] = None,
        settings: MappingSettings = DEFAULT_SETTINGS,
    ):
        self.repository = repository
        self.converter = converter if converter is not None else DefaultBasicTypeConverterImpl()
        self.settings = settings
