import asyncio

import pytest

from ..caching import CachedTopicMappingService
from ..hierarchical import DefaultHierarchicalTopicMappingService
from ..lookup import TypeLookupService
from ..mapper import DefaultTopicMappingService
from ..models import Topic
from .testing import NavigationViewModel, StubTopicRepository


# children arrive in completion order
def keys(view_model):
    return sorted(c.key for c in view_model.children)


def child(view_model, key):
    return next(c for c in view_model.children if c.key == key)


class TestHierarchicalMapper:
    @pytest.fixture
    def repository(self) -> StubTopicRepository:
        return StubTopicRepository()

    @pytest.fixture
    def service(self, repository) -> DefaultHierarchicalTopicMappingService:
        return DefaultHierarchicalTopicMappingService(
            repository,
            DefaultTopicMappingService(repository, TypeLookupService()),
            NavigationViewModel,
        )

    def test_hierarchical_root(self, service, repository):
        web = repository.load("Root:Web")
        about = repository.load("Root:Web:About")
        team = repository.load("Root:Web:About:Team")
        assert service.get_hierarchical_root(team) is about
        assert service.get_hierarchical_root(about) is about
        assert service.get_hierarchical_root(web) is web
        assert service.get_hierarchical_root(team, from_root=1) is web
        assert service.get_hierarchical_root(None) is web
        assert service.get_hierarchical_root(None, default_root="Root:Web:About") is about
        assert service.get_hierarchical_root(None, default_root="Root:Nope") is None

    @pytest.mark.asyncio
    async def test_one_tier(self, service, repository):
        web = repository.load("Root:Web")
        result = await service.get_view_model(web)
        assert isinstance(result, NavigationViewModel)
        assert result.key == "Web"
        assert result.title == "Home"
        assert result.web_path == "/Web/"
        assert keys(result) == ["About", "Contact"]
        assert all(c.children == [] for c in result.children)

    @pytest.mark.asyncio
    async def test_tiers(self, service, repository):
        web = repository.load("Root:Web")
        result = await service.get_view_model(web, tiers=2)
        about = child(result, "About")
        assert keys(about) == ["History", "Team"]
        assert about.children[0].children == []
        result = await service.get_view_model(web, tiers=0)
        assert result.children == []

    @pytest.mark.asyncio
    async def test_predicate(self, service, repository):
        web = repository.load("Root:Web")
        result = await service.get_view_model(web, tiers=2, predicate=lambda t: t.key != "Team")
        assert keys(child(result, "About")) == ["History"]
        result = await service.get_view_model(web, predicate=lambda t: t.key != "Web")
        assert result.children == []

    @pytest.mark.asyncio
    async def test_none(self, service, repository):
        assert await service.get_view_model(None) is None
        web = repository.load("Root:Web")
        assert await service.get_view_model(web.children["Disabled"]) is None

    @pytest.mark.asyncio
    async def test_root_view_model(self, service, repository):
        team = repository.load("Root:Web:About:Team")
        result = await service.get_root_view_model(team)
        assert result.key == "About"
        assert keys(result) == ["History", "Team"]
        result = await service.get_root_view_model(None)
        assert result.key == "Web"

    @pytest.mark.asyncio
    async def test_children_are_not_mapped_by_the_mapping_service(self, service, repository):
        web = repository.load("Root:Web")
        Topic("Extra", "Page", web.children["Contact"])
        result = await service.get_view_model(web)
        contact = child(result, "Contact")
        assert contact.children == []

    @pytest.mark.asyncio
    async def test_shared_view_models_are_populated_once(self, repository):
        service = DefaultHierarchicalTopicMappingService(
            repository,
            CachedTopicMappingService(DefaultTopicMappingService(repository, TypeLookupService())),
            NavigationViewModel,
        )
        web = repository.load("Root:Web")
        results = await asyncio.gather(*(service.get_view_model(web, tiers=2) for _ in range(3)))
        first = results[0]
        assert all(r is first for r in results)
        assert await service.get_view_model(web, tiers=2) is first
        assert keys(first) == ["About", "Contact"]
        assert keys(child(first, "About")) == ["History", "Team"]
