import asyncio
import logging
import typing

from .declarative import Relationships
from .defaults import DEFAULT_SETTINGS, MappingSettings
from .interfaces import (
    HierarchicalTopicMappingService,
    NavigationTopicViewModel,
    TopicMappingService,
    TopicRepository,
)
from .models import Topic
from .utils import drain

logger = logging.getLogger(__name__)

Tn = typing.TypeVar("Tn", bound=NavigationTopicViewModel)

Predicate = typing.Callable[[Topic], bool]


class DefaultHierarchicalTopicMappingService(HierarchicalTopicMappingService[Tn]):
    """
    Builds trees of navigation view models, such as menus, mapping each
    tier of children concurrently.
    """

    repository: TopicRepository
    mapping_service: TopicMappingService
    view_model_type: typing.Type[Tn]
    settings: MappingSettings
    _children_lock: asyncio.Lock

    def get_hierarchical_root(
        self,
        current: typing.Optional[Topic],
        from_root: typing.Optional[int] = None,
        default_root: typing.Optional[str] = None,
    ) -> typing.Optional[Topic]:
        if from_root is None:
            from_root = self.settings.hierarchical_from_root
        if default_root is None:
            default_root = self.settings.hierarchical_root_key
        root = current
        while root is not None and root.get_depth() > from_root:
            root = root.parent
        if root is None and default_root:
            logger.debug("no current topic; falling back to %s", default_root)
            root = self.repository.load(default_root)
        return root

    async def get_root_view_model(
        self,
        current: typing.Optional[Topic],
        tiers: int = 1,
        predicate: typing.Optional[Predicate] = None,
    ) -> typing.Optional[Tn]:
        return await self.get_view_model(self.get_hierarchical_root(current), tiers, predicate)

    async def get_view_model(
        self,
        source: typing.Optional[Topic],
        tiers: int = 1,
        predicate: typing.Optional[Predicate] = None,
    ) -> typing.Optional[Tn]:
        if source is None:
            return None
        tiers -= 1
        view_model = self.mapping_service.map_as(source, self.view_model_type, Relationships.NONE)
        if view_model is None:
            return None
        if tiers >= 0 and (predicate is None or predicate(source)) and not view_model.children:
            children: typing.List[Tn] = []
            async for child in drain(
                self.get_view_model(topic, tiers, predicate)
                for topic in source.children
                if topic.is_visible() and (predicate is None or predicate(topic))
            ):
                if child is not None:
                    children.append(child)
            if not view_model.children:
                async with self._children_lock:
                    if not view_model.children:
                        view_model.children.extend(children)
        return view_model

    def __init__(
        self,
        repository: TopicRepository,
        mapping_service: TopicMappingService,
        view_model_type: typing.Type[Tn],
        settings: MappingSettings = DEFAULT_SETTINGS,
    ):
        self.repository = repository
        self.mapping_service = mapping_service
        self.view_model_type = view_model_type
        self.settings = settings
        self._children_lock = asyncio.Lock()
