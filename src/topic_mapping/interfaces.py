"""
This module contains the interfaces the mapping services are built upon,
along with the capability classes binding and view models declare
themselves against.

"""
import abc
import typing

from .declarative import Relationships
from .metadata import ContentTypeDescriptorCollection
from .models import Topic

T = typing.TypeVar("T")
Tn = typing.TypeVar("Tn", bound="NavigationTopicViewModel")


class TopicRepository(metaclass=abc.ABCMeta):
    """
    A :py:class:`TopicRepository` loads and saves topics.  The mapping
    services only ever consume it; they never save on their own.
    """

    @abc.abstractmethod
    def load(self, unique_key_or_id: typing.Union[str, int, None] = None) -> typing.Optional[Topic]:
        """
        Loads a topic either by its unique key (``Root:Web:Page``) or by its id.
        Loads the root topic if nothing is given.

        :param unique_key_or_id: the unique key or the id of the topic.
        :return: the topic, or None if no such topic exists.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def get_content_type_descriptors(self) -> ContentTypeDescriptorCollection:
        """
        Returns every content type descriptor known to the repository, keyed
        by content type.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def save(self, topic: Topic, is_recursive: bool = False) -> int:
        """
        Persists a topic, assigning an id if it has none yet.

        :param Topic topic: the topic to save.
        :param bool is_recursive: whether to save its descendants as well.
        :return: the id of the topic.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def delete(self, topic: Topic) -> None:
        """
        Removes a topic along with its descendants.
        """
        ...  # pragma: nocover


class TopicMappingService(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def map(self, topic: typing.Optional[Topic], relationships: Relationships = Relationships.ALL) -> typing.Any:
        """
        Maps a topic to a new instance of the view model type registered for
        its content type.

        :param Topic topic: the source topic.
        :param Relationships relationships: the relationships the mapping may follow.
        :return: the view model, or None if the topic is None or disabled.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def map_as(
        self,
        topic: typing.Optional[Topic],
        type_: typing.Type[T],
        relationships: Relationships = Relationships.ALL,
    ) -> typing.Optional[T]:
        """
        Maps a topic to a new instance of the given type.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def map_to(
        self,
        topic: typing.Optional[Topic],
        target: T,
        relationships: Relationships = Relationships.ALL,
    ) -> T:
        """
        Maps a topic onto an existing instance.  The target is returned
        untouched if the topic is None or disabled.
        """
        ...  # pragma: nocover


class ReverseTopicMappingService(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    async def map(self, source: "TopicBindingModel", target: typing.Optional[Topic] = None) -> Topic:
        """
        Maps a binding model onto a topic.

        :param TopicBindingModel source: the binding model.
        :param Topic target: the topic to update. A new one is created from the binding model's key and content type when omitted.
        :return: the (possibly new) topic.
        """
        ...  # pragma: nocover


class HierarchicalTopicMappingService(typing.Generic[Tn], metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def get_hierarchical_root(
        self,
        current: typing.Optional[Topic],
        from_root: typing.Optional[int] = None,
        default_root: typing.Optional[str] = None,
    ) -> typing.Optional[Topic]:
        """
        Walks up from ``current`` to the ancestor no deeper than ``from_root``
        (the root itself lies at depth 0).  Falls back to loading ``default_root``
        when ``current`` is None.  Both default to the configured settings.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    async def get_root_view_model(
        self,
        current: typing.Optional[Topic],
        tiers: int = 1,
        predicate: typing.Optional[typing.Callable[[Topic], bool]] = None,
    ) -> typing.Optional[Tn]:
        ...  # pragma: nocover

    @abc.abstractmethod
    async def get_view_model(
        self,
        source: typing.Optional[Topic],
        tiers: int = 1,
        predicate: typing.Optional[typing.Callable[[Topic], bool]] = None,
    ) -> typing.Optional[Tn]:
        """
        Maps ``source`` and, ``tiers`` levels down, its visible children into
        a tree of navigation view models.

        :param Topic source: the root of the tree.
        :param int tiers: the number of levels of children to include.
        :param predicate: an optional filter applied to every child.
        :return: the navigation view model, or None if ``source`` is None.
        """
        ...  # pragma: nocover


class TopicBindingModel(metaclass=abc.ABCMeta):
    """
    A binding model the reverse mapping service can map onto a topic.
    """

    key: str
    content_type: str


class RelatedTopicBindingModel(metaclass=abc.ABCMeta):
    """
    A binding model that refers to an existing topic by its unique key.
    """

    unique_key: str


class NavigationTopicViewModel(metaclass=abc.ABCMeta):
    children: typing.List[typing.Any]
