import pytest

from ..caching import CachedHierarchicalTopicMappingService, CachedTopicMappingService
from ..declarative import Relationships
from ..hierarchical import DefaultHierarchicalTopicMappingService
from ..lookup import TypeLookupService
from ..mapper import DefaultTopicMappingService
from ..models import Topic
from .testing import NavigationViewModel, PageViewModel, StubTopicRepository, TopicViewModel


class TestCachedTopicMappingService:
    @pytest.fixture
    def repository(self) -> StubTopicRepository:
        return StubTopicRepository()

    @pytest.fixture
    def service(self, repository) -> CachedTopicMappingService:
        return CachedTopicMappingService(DefaultTopicMappingService(repository, TypeLookupService([PageViewModel])))

    def test_map(self, service, repository):
        about = repository.load("Root:Web:About")
        first = service.map(about)
        assert isinstance(first, PageViewModel)
        assert service.map(about) is first
        assert service.map(about, Relationships.NONE) is not first

    def test_map_as(self, service, repository):
        about = repository.load("Root:Web:About")
        first = service.map_as(about, TopicViewModel)
        assert type(first) is TopicViewModel
        assert service.map_as(about, TopicViewModel) is first
        assert service.map_as(about, PageViewModel) is not first
        assert service.map(about) is not first

    def test_unsaved_topics_are_not_cached(self, service, repository):
        topic = Topic("Test", "Page", repository.load("Root:Web"))
        first = service.map(topic)
        assert first is not None
        assert service.map(topic) is not first

    def test_none_is_not_cached(self, service, repository):
        disabled = repository.load("Root:Web:Disabled")
        assert service.map(disabled) is None
        disabled.is_disabled = False
        assert service.map(disabled) is not None

    def test_map_to_is_passed_through(self, service, repository):
        about = repository.load("Root:Web:About")
        target = PageViewModel()
        assert service.map_to(about, target) is target
        assert target.key == "About"
        assert service.map(about) is not target


class TestCachedHierarchicalTopicMappingService:
    @pytest.fixture
    def repository(self) -> StubTopicRepository:
        return StubTopicRepository()

    @pytest.fixture
    def service(self, repository) -> CachedHierarchicalTopicMappingService:
        return CachedHierarchicalTopicMappingService(
            DefaultHierarchicalTopicMappingService(
                repository,
                DefaultTopicMappingService(repository, TypeLookupService()),
                NavigationViewModel,
            )
        )

    def test_hierarchical_root(self, service, repository):
        team = repository.load("Root:Web:About:Team")
        assert service.get_hierarchical_root(team).key == "About"
        assert service.get_hierarchical_root(team, from_root=1).key == "Web"
        assert service.get_hierarchical_root(None).key == "Web"

    @pytest.mark.asyncio
    async def test_get_view_model(self, service, repository):
        web = repository.load("Root:Web")
        first = await service.get_view_model(web)
        assert await service.get_view_model(web) is first
        assert await service.get_view_model(web, tiers=3) is first
        assert await service.get_root_view_model(None) is first

    @pytest.mark.asyncio
    async def test_unsaved_topics_are_not_cached(self, service, repository):
        topic = Topic("Test", "Page", repository.load("Root:Web"))
        first = await service.get_view_model(topic)
        assert first is not None
        assert await service.get_view_model(topic) is not first
