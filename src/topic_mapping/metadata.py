import collections.abc
import enum
import re
import typing
from collections import OrderedDict

from .factory import TopicFactory
from .models import Topic

CONTENT_TYPE_DESCRIPTOR = "ContentTypeDescriptor"
ATTRIBUTE_DESCRIPTOR = "AttributeDescriptor"
ATTRIBUTES_CONTAINER_KEY = "Attributes"
REFERENCE_SUFFIX = "Id"

RELATIONSHIP_EDITOR_TYPES = frozenset(["Relationships", "TokenizedTopicList"])
REFERENCE_EDITOR_TYPES = frozenset(["TopicLookup", "TopicPointer"])
NESTED_TOPIC_EDITOR_TYPES = frozenset(["TopicList"])

_configuration_re = re.compile(r'([A-Za-z0-9_\-\.]+)\s*=\s*("[^"]*"|\'[^\']*\'|\S+)')


class ModelType(enum.Enum):
    SCALAR_VALUE = "ScalarValue"
    RELATIONSHIP = "Relationship"
    NESTED_TOPIC = "NestedTopic"
    REFERENCE = "Reference"


def parse_configuration(configuration: typing.Optional[str]) -> typing.Dict[str, str]:
    """
    Parses a ``DefaultConfiguration`` string such as ``ContentType="Page" ShowRoot="true"``
    into a dictionary, stripping any quotes around the values.
    """
    result: typing.Dict[str, str] = OrderedDict()
    if not configuration:
        return result
    for key, value in _configuration_re.findall(configuration):
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        result[key] = value
    return result


@TopicFactory.register(ATTRIBUTE_DESCRIPTOR)
class AttributeDescriptor(Topic):
    _configuration: typing.Optional[typing.Dict[str, str]]

    @property
    def editor_type(self) -> str:
        value = self.attributes.get_value("Type", "") or ""
        if "." in value:
            value = value[: value.rindex(".")]
        return value

    @property
    def model_type(self) -> ModelType:
        editor_type = self.editor_type
        if editor_type in RELATIONSHIP_EDITOR_TYPES:
            return ModelType.RELATIONSHIP
        elif editor_type in REFERENCE_EDITOR_TYPES or (
            self.key.endswith(REFERENCE_SUFFIX) and self.key != REFERENCE_SUFFIX
        ):
            return ModelType.REFERENCE
        elif editor_type in NESTED_TOPIC_EDITOR_TYPES:
            return ModelType.NESTED_TOPIC
        return ModelType.SCALAR_VALUE

    @property
    def display_group(self) -> typing.Optional[str]:
        return self.attributes.get_value("DisplayGroup")

    @property
    def is_required(self) -> bool:
        return self.attributes.get_boolean("IsRequired")

    @property
    def default_value(self) -> typing.Optional[str]:
        return self.attributes.get_value("DefaultValue")

    @property
    def configuration(self) -> typing.Mapping[str, str]:
        if self._configuration is None:
            self._configuration = parse_configuration(self.attributes.get_value("DefaultConfiguration"))
        return self._configuration

    def get_configuration_value(self, key: str, default: typing.Optional[str] = None) -> typing.Optional[str]:
        return self.configuration.get(key, default)

    def reset_configuration(self) -> None:
        self._configuration = None

    def __init__(
        self,
        key: str,
        content_type: str = ATTRIBUTE_DESCRIPTOR,
        parent: typing.Optional[Topic] = None,
        id: int = -1,
    ):
        super().__init__(key, content_type, parent=parent, id=id)
        self._configuration = None


class AttributeDescriptorCollection(collections.abc.Mapping):
    _items: typing.Dict[str, AttributeDescriptor]
    _lowered: typing.Dict[str, AttributeDescriptor]

    def __getitem__(self, key: str) -> AttributeDescriptor:
        return self._items[key]

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def find(self, key: str) -> typing.Optional[AttributeDescriptor]:
        return self._items.get(key) or self._lowered.get(key.lower())

    def _add(self, descr: AttributeDescriptor) -> bool:
        if descr.key.lower() in self._lowered:
            return False
        self._items[descr.key] = descr
        self._lowered[descr.key.lower()] = descr
        return True

    def __init__(self):
        self._items = OrderedDict()
        self._lowered = {}


@TopicFactory.register(CONTENT_TYPE_DESCRIPTOR)
class ContentTypeDescriptor(Topic):
    """
    Describes the attributes a content type supports.

    Attribute descriptors are the children of the ``Attributes`` container.
    A content type descriptor nested beneath another inherits every
    descriptor of its parent that it does not declare itself.
    """

    _attribute_descriptors: typing.Optional[AttributeDescriptorCollection]

    @property
    def attribute_descriptors(self) -> AttributeDescriptorCollection:
        if self._attribute_descriptors is None:
            descrs = AttributeDescriptorCollection()
            container = self.children.get(ATTRIBUTES_CONTAINER_KEY)
            if container is not None:
                for child in container.children:
                    if isinstance(child, AttributeDescriptor):
                        descrs._add(child)
            parent = self.parent
            if isinstance(parent, ContentTypeDescriptor):
                for descr in parent.attribute_descriptors.values():
                    descrs._add(descr)
            self._attribute_descriptors = descrs
        return self._attribute_descriptors

    @property
    def permitted_content_types(self) -> typing.List[Topic]:
        return self.relationships.get_topics("ContentTypes")

    def reset_attribute_descriptors(self) -> None:
        self._attribute_descriptors = None
        for child in self.children:
            if isinstance(child, ContentTypeDescriptor):
                child.reset_attribute_descriptors()

    def is_type_of(self, content_type: str) -> bool:
        descr: typing.Optional[Topic] = self
        while isinstance(descr, ContentTypeDescriptor):
            if descr.key == content_type:
                return True
            descr = descr.parent
        return False

    def __init__(
        self,
        key: str,
        content_type: str = CONTENT_TYPE_DESCRIPTOR,
        parent: typing.Optional[Topic] = None,
        id: int = -1,
    ):
        super().__init__(key, content_type, parent=parent, id=id)
        self._attribute_descriptors = None


class ContentTypeDescriptorCollection(collections.abc.Mapping):
    _items: typing.Dict[str, ContentTypeDescriptor]

    def __getitem__(self, key: str) -> ContentTypeDescriptor:
        return self._items[key]

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, descr: ContentTypeDescriptor) -> None:
        self._items[descr.key] = descr

    def __init__(self, descrs: typing.Iterable[ContentTypeDescriptor] = ()):
        self._items = OrderedDict()
        for descr in descrs:
            self.add(descr)
