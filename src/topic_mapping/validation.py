import logging
import typing

from .configuration import PropertyConfiguration, get_property_configurations
from .declarative import RelationshipType
from .defaults import DEFAULT_SETTINGS, MappingSettings
from .exceptions import MappingModelValidationError
from .interfaces import RelatedTopicBindingModel, TopicBindingModel
from .metadata import ContentTypeDescriptor, ModelType

logger = logging.getLogger(__name__)

#: Properties carried by every binding model; they identify the topic rather than describe it.
INTRINSIC_ATTRIBUTE_KEYS = frozenset(["Key", "ContentType"])


def _implements(type_: typing.Any, capability: type) -> bool:
    return isinstance(type_, type) and issubclass(type_, capability)


class BindingModelValidator:
    """
    Checks the shape of a binding model type against a content type
    descriptor before the reverse mapping service touches a topic.

    Results are remembered for the life of the process, keyed by the binding
    model type and the content type.
    """

    _validated: typing.ClassVar[typing.Dict[typing.Tuple[type, str, str], bool]] = {}

    @classmethod
    def validate(
        cls,
        source_type: type,
        properties: typing.Mapping[str, PropertyConfiguration],
        content_type: ContentTypeDescriptor,
        attribute_prefix: str = "",
        settings: MappingSettings = DEFAULT_SETTINGS,
    ) -> None:
        """
        Validates ``source_type`` against ``content_type``.

        :param type source_type: the binding model type.
        :param properties: the property configurations of ``source_type``.
        :param ContentTypeDescriptor content_type: the descriptor of the target's content type.
        :param str attribute_prefix: prepended to every attribute key (set when validating a ``map_to_parent`` property).
        :param MappingSettings settings: the settings in effect.
        :raises MappingModelValidationError: if the binding model does not line up with the content type.
        """
        cache_key = (source_type, content_type.key, attribute_prefix)
        if cache_key in cls._validated:
            return
        for config in properties.values():
            cls._validate_property(source_type, config, content_type, attribute_prefix, settings)
        logger.debug("validated %s against the %s content type", source_type.__name__, content_type.key)
        cls._validated.setdefault(cache_key, True)

    @classmethod
    def _validate_property(
        cls,
        source_type: type,
        config: PropertyConfiguration,
        content_type: ContentTypeDescriptor,
        attribute_prefix: str,
        settings: MappingSettings,
    ) -> None:
        if config.disable_mapping:
            return
        if not attribute_prefix and config.attribute_key in INTRINSIC_ATTRIBUTE_KEYS:
            return
        if config.map_to_parent:
            child_type = config.value_type
            if not isinstance(child_type, type):
                raise MappingModelValidationError(
                    f"the {config.name} property of {source_type.__name__} is mapped to its parent, but is not typed as a class",
                    source_type,
                    config.name,
                )
            cls.validate(
                child_type,
                get_property_configurations(child_type),
                content_type,
                attribute_prefix + config.attribute_prefix,
                settings,
            )
            return

        key = attribute_prefix + config.attribute_key
        if config.relationship_type is RelationshipType.CHILDREN or config.relationship_key == "Children":
            raise MappingModelValidationError(
                f"the {config.name} property of {source_type.__name__} maps to children; reverse mapping does not "
                "support children, which must be mapped individually",
                source_type,
                config.name,
            )
        if key == "Parent":
            raise MappingModelValidationError(
                f"the {config.name} property of {source_type.__name__} maps to the parent, which reverse mapping does not support",
                source_type,
                config.name,
            )

        attribute_descr = content_type.attribute_descriptors.find(key)
        if attribute_descr is None:
            raise MappingModelValidationError(
                f"the {config.name} property of {source_type.__name__} maps to the attribute {key}, which is not "
                f"declared by the {content_type.key} content type",
                source_type,
                config.name,
            )

        model_type = attribute_descr.model_type
        if model_type is ModelType.RELATIONSHIP:
            if not config.is_list:
                raise MappingModelValidationError(
                    f"the {config.name} property of {source_type.__name__} maps to the relationship {key}, but is not a list",
                    source_type,
                    config.name,
                )
            if config.relationship_type not in (RelationshipType.ANY, RelationshipType.RELATIONSHIP):
                raise MappingModelValidationError(
                    f"the {config.name} property of {source_type.__name__} maps to the relationship {key}, but is "
                    f"declared as {config.relationship_type.value}",
                    source_type,
                    config.name,
                )
            if not _implements(config.element_type, RelatedTopicBindingModel):
                raise MappingModelValidationError(
                    f"the items of the {config.name} property of {source_type.__name__} must implement "
                    f"{RelatedTopicBindingModel.__name__}",
                    source_type,
                    config.name,
                )
        elif model_type is ModelType.NESTED_TOPIC:
            if not config.is_list or not _implements(config.element_type, TopicBindingModel):
                raise MappingModelValidationError(
                    f"the {config.name} property of {source_type.__name__} maps to the nested topics {key}, and must "
                    f"be a list of {TopicBindingModel.__name__}",
                    source_type,
                    config.name,
                )
        elif model_type is ModelType.REFERENCE:
            if not _implements(config.value_type, RelatedTopicBindingModel):
                raise MappingModelValidationError(
                    f"the {config.name} property of {source_type.__name__} maps to the reference {key}, and must "
                    f"implement {RelatedTopicBindingModel.__name__}",
                    source_type,
                    config.name,
                )
            if not key.endswith(settings.reference_suffix):
                raise MappingModelValidationError(
                    f"the {config.name} property of {source_type.__name__} maps to the reference {key}, whose key "
                    f'must end with "{settings.reference_suffix}"',
                    source_type,
                    config.name,
                )
