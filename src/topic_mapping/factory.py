import logging
import typing

from .models import Topic, validate_key

logger = logging.getLogger(__name__)

T = typing.TypeVar("T", bound=typing.Type[Topic])


class TopicFactory:
    """
    Creates topics of the class registered for their content type, falling
    back to :class:`Topic`.  Lookups are cached for the life of the process.
    """

    _registry: typing.ClassVar[typing.Dict[str, typing.Type[Topic]]] = {}
    _lookup_cache: typing.ClassVar[typing.Dict[str, typing.Type[Topic]]] = {}

    @classmethod
    def register(cls, content_type: str) -> typing.Callable[[T], T]:
        validate_key(content_type)

        def _(topic_class: T) -> T:
            if not issubclass(topic_class, Topic):
                raise TypeError(f"{topic_class!r} is not a subclass of Topic")
            cls._registry[content_type] = topic_class
            cls._lookup_cache.pop(content_type, None)
            return topic_class

        return _

    @classmethod
    def lookup(cls, content_type: str) -> typing.Type[Topic]:
        try:
            return cls._lookup_cache[content_type]
        except KeyError:
            pass
        topic_class = cls._registry.get(content_type, Topic)
        return cls._lookup_cache.setdefault(content_type, topic_class)

    @classmethod
    def create(
        cls,
        key: str,
        content_type: str,
        parent: typing.Optional[Topic] = None,
        id: typing.Optional[int] = None,
    ) -> Topic:
        validate_key(key)
        validate_key(content_type)
        topic_class = cls.lookup(content_type)
        logger.debug("creating %s %s as %s", content_type, key, topic_class.__name__)
        topic = topic_class(key, content_type, parent=parent, id=-1 if id is None else id)
        return topic
