import logging
import typing

from .interfaces import TopicRepository
from .metadata import ContentTypeDescriptor, ContentTypeDescriptorCollection
from .models import UNIQUE_KEY_DELIMITER, Topic

logger = logging.getLogger(__name__)

CONTENT_TYPES_UNIQUE_KEY = "Root:Configuration:ContentTypes"


def find_topic(root: typing.Optional[Topic], unique_key_or_id: typing.Union[str, int, None]) -> typing.Optional[Topic]:
    """
    Looks up a topic beneath (or being) ``root`` by unique key or by id.
    """
    if root is None or unique_key_or_id is None:
        return root
    if isinstance(unique_key_or_id, int):
        return root.find_first(lambda t: t.id == unique_key_or_id)
    keys = unique_key_or_id.split(UNIQUE_KEY_DELIMITER)
    if keys[0] != root.key:
        return None
    topic: typing.Optional[Topic] = root
    for key in keys[1:]:
        if topic is None:
            break
        topic = topic.children.get(key)
    return topic


class TopicRepositoryBase(TopicRepository):
    """
    Provides content type discovery on top of :meth:`TopicRepository.load`.
    Content type descriptors are read from ``Root:Configuration:ContentTypes``
    the first time they are requested.
    """

    _content_type_descriptors: typing.Optional[ContentTypeDescriptorCollection] = None

    def get_content_type_descriptors(self) -> ContentTypeDescriptorCollection:
        if self._content_type_descriptors is None:
            descrs = ContentTypeDescriptorCollection()
            container = self.load(CONTENT_TYPES_UNIQUE_KEY)
            if container is None:
                logger.warning("no content types found at %s", CONTENT_TYPES_UNIQUE_KEY)
            else:
                for topic in [container, *container.iter_descendants()]:
                    if isinstance(topic, ContentTypeDescriptor):
                        descrs.add(topic)
                logger.debug("loaded %d content types", len(descrs))
            self._content_type_descriptors = descrs
        return self._content_type_descriptors

    def reset_content_type_descriptors(self) -> None:
        if self._content_type_descriptors is not None:
            for descr in self._content_type_descriptors.values():
                descr.reset_attribute_descriptors()
        self._content_type_descriptors = None
