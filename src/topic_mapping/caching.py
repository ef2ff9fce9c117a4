import logging
import typing

from .declarative import Relationships
from .interfaces import HierarchicalTopicMappingService, NavigationTopicViewModel, TopicMappingService
from .models import Topic

logger = logging.getLogger(__name__)

T = typing.TypeVar("T")
Tn = typing.TypeVar("Tn", bound=NavigationTopicViewModel)

CacheKey = typing.Tuple[int, typing.Optional[type], Relationships]


class CachedTopicMappingService(TopicMappingService):
    """
    Memoizes the view models produced by another :class:`TopicMappingService`
    for the life of the instance.  Only saved topics (with a positive id) are
    cached, and nothing is ever evicted.
    """

    service: TopicMappingService
    _cache: typing.Dict[CacheKey, typing.Any]

    def _get_or_map(self, key: CacheKey, mapper: typing.Callable[[], typing.Any]) -> typing.Any:
        try:
            return self._cache[key]
        except KeyError:
            pass
        view_model = mapper()
        if view_model is None:
            return None
        logger.debug("caching the view model of topic %d (%s, %r)", *key)
        return self._cache.setdefault(key, view_model)

    def map(self, topic: typing.Optional[Topic], relationships: Relationships = Relationships.ALL) -> typing.Any:
        if topic is None or topic.id <= 0:
            return self.service.map(topic, relationships)
        return self._get_or_map((topic.id, None, relationships), lambda: self.service.map(topic, relationships))

    def map_as(
        self,
        topic: typing.Optional[Topic],
        type_: typing.Type[T],
        relationships: Relationships = Relationships.ALL,
    ) -> typing.Optional[T]:
        if topic is None or topic.id <= 0:
            return self.service.map_as(topic, type_, relationships)
        return self._get_or_map(
            (topic.id, type_, relationships), lambda: self.service.map_as(topic, type_, relationships)
        )

    def map_to(self, topic: typing.Optional[Topic], target: T, relationships: Relationships = Relationships.ALL) -> T:
        return self.service.map_to(topic, target, relationships)

    def __init__(self, service: TopicMappingService):
        self.service = service
        self._cache = {}


class CachedHierarchicalTopicMappingService(HierarchicalTopicMappingService[Tn]):
    """
    Memoizes navigation trees by the id of their root topic.  The tier count
    and the predicate are not part of the key; the first tree built for a
    root is the one returned from then on.
    """

    service: HierarchicalTopicMappingService[Tn]
    _cache: typing.Dict[int, Tn]

    def get_hierarchical_root(
        self,
        current: typing.Optional[Topic],
        from_root: typing.Optional[int] = None,
        default_root: typing.Optional[str] = None,
    ) -> typing.Optional[Topic]:
        kwargs: typing.Dict[str, typing.Any] = {}
        if from_root is not None:
            kwargs["from_root"] = from_root
        if default_root is not None:
            kwargs["default_root"] = default_root
        return self.service.get_hierarchical_root(current, **kwargs)

    async def get_root_view_model(
        self,
        current: typing.Optional[Topic],
        tiers: int = 1,
        predicate: typing.Optional[typing.Callable[[Topic], bool]] = None,
    ) -> typing.Optional[Tn]:
        return await self.get_view_model(self.get_hierarchical_root(current), tiers, predicate)

    async def get_view_model(
        self,
        source: typing.Optional[Topic],
        tiers: int = 1,
        predicate: typing.Optional[typing.Callable[[Topic], bool]] = None,
    ) -> typing.Optional[Tn]:
        if source is None or source.id <= 0:
            return await self.service.get_view_model(source, tiers, predicate)
        try:
            return self._cache[source.id]
        except KeyError:
            pass
        view_model = await self.service.get_view_model(source, tiers, predicate)
        if view_model is None:
            return None
        return self._cache.setdefault(source.id, view_model)

    def __init__(self, service: HierarchicalTopicMappingService[Tn]):
        self.service = service
        self._cache = {}
