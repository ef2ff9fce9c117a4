import dataclasses
import typing

import pytest

from ..declarative import Prop, Range, Required
from ..exceptions import BindingModelValueError, MappingModelValidationError
from ..interfaces import TopicBindingModel
from ..lookup import TypeLookupService
from ..mapper import DefaultTopicMappingService
from ..models import Topic
from ..reverse import DefaultReverseTopicMappingService
from .testing import (
    CommentViewModel,
    PageViewModel,
    RelatedTopicReference,
    StubTopicRepository,
)


@dataclasses.dataclass
class CommentBindingModel(TopicBindingModel):
    key: str = ""
    content_type: str = "Comment"
    author: typing.Optional[str] = None
    body: typing.Optional[str] = None


@dataclasses.dataclass
class ContactBindingModel:
    name: typing.Optional[str] = None
    email: typing.Optional[str] = None


@dataclasses.dataclass
class PageBindingModel(TopicBindingModel):
    key: str = ""
    content_type: str = "Page"
    title: typing.Annotated[typing.Optional[str], Prop(validators=[Required()])] = "Untitled"
    description: typing.Annotated[typing.Optional[str], Prop(default="No description")] = None
    rank: typing.Annotated[int, Prop(validators=[Range(0, 10)])] = 0
    is_featured: bool = False
    related: typing.List[RelatedTopicReference] = dataclasses.field(default_factory=list)
    comments: typing.List[CommentBindingModel] = dataclasses.field(default_factory=list)
    featured_id: typing.Optional[RelatedTopicReference] = None
    contact: typing.Annotated[ContactBindingModel, Prop(map_to_parent=True)] = dataclasses.field(
        default_factory=ContactBindingModel
    )


@dataclasses.dataclass
class ArticleBindingModel(PageBindingModel):
    content_type: str = "Article"
    byline: typing.Optional[str] = None


class TestReverseMapper:
    @pytest.fixture
    def repository(self) -> StubTopicRepository:
        return StubTopicRepository()

    @pytest.fixture
    def service(self, repository) -> DefaultReverseTopicMappingService:
        return DefaultReverseTopicMappingService(repository)

    @pytest.fixture
    def web(self, repository) -> Topic:
        topic = repository.load("Root:Web")
        assert topic is not None
        return topic

    @pytest.mark.asyncio
    async def test_scalars(self, service):
        source = PageBindingModel(
            key="Test",
            title="Hello",
            rank=3,
            is_featured=True,
            contact=ContactBindingModel(name="Jane", email="jane@example.com"),
        )
        topic = await service.map(source)
        assert topic.key == "Test"
        assert topic.content_type == "Page"
        assert topic.parent is None
        assert topic.title == "Hello"
        assert topic.attributes.get_value("Rank") == "3"
        assert topic.attributes.get_value("IsFeatured") == "1"
        assert topic.attributes.get_value("Description") == "No description"
        assert topic.attributes.get_value("ContactName") == "Jane"
        assert topic.attributes.get_value("ContactEmail") == "jane@example.com"
        assert "Key" not in topic.attributes
        assert "ContentType" not in topic.attributes

    @pytest.mark.asyncio
    async def test_clears_emptied_values(self, service, web):
        target = web.children["About"]
        target.attributes.set_value("ContactName", "Jane")
        await service.map(PageBindingModel(key="About"), target)
        assert "ContactName" not in target.attributes
        assert target.title == "Untitled"

    @pytest.mark.asyncio
    async def test_inherited_content_type(self, service):
        topic = await service.map(ArticleBindingModel(key="Test", byline="Jane", rank=1))
        assert topic.content_type == "Article"
        assert topic.attributes.get_value("Byline") == "Jane"
        assert topic.attributes.get_value("Rank") == "1"

    @pytest.mark.asyncio
    async def test_relationships(self, service, web):
        target = web.children["Contact"]
        target.relationships.set_topic("Related", web.children["Hidden"])
        target.relationships.set_topic("Other", web.children["Hidden"])
        source = PageBindingModel(
            key="Contact",
            related=[
                RelatedTopicReference(unique_key="Root:Web:About"),
                RelatedTopicReference(unique_key="Root:Web:Nonexistent"),
                RelatedTopicReference(unique_key="Root:Web:About:Team"),
            ],
        )
        await service.map(source, target)
        assert [t.key for t in target.relationships.get_topics("Related")] == ["About", "Team"]
        assert [t.key for t in target.relationships.get_topics("Other")] == ["Hidden"]
        assert web.children["Hidden"].incoming_relationships.get_topics("Related") == []

    @pytest.mark.asyncio
    async def test_nested_topics(self, service, web):
        target = Topic("Test", "Page", web)
        comments = Topic("Comments", "List", target)
        for key in ("x", "y", "z"):
            Topic(key, "Comment", comments).attributes.set_value("Author", key.upper())
        y = comments.children["y"]

        source = PageBindingModel(
            key="Test",
            comments=[
                CommentBindingModel(key="y", author="Y2"),
                CommentBindingModel(key="z"),
                CommentBindingModel(key="w", author="W"),
            ],
        )
        await service.map(source, target)
        assert target.children["Comments"] is comments
        assert sorted(comments.children.keys()) == ["w", "y", "z"]
        assert comments.children["y"] is y
        assert y.attributes.get_value("Author") == "Y2"
        assert comments.children["z"].attributes.get_value("Author") is None
        assert comments.children["w"].attributes.get_value("Author") == "W"
        assert comments.children["w"].parent is comments

    @pytest.mark.asyncio
    async def test_nested_topics_container_is_created(self, service):
        source = PageBindingModel(key="Test", comments=[CommentBindingModel(key="First")])
        topic = await service.map(source)
        container = topic.children["Comments"]
        assert container.content_type == "List"
        assert container.is_hidden
        assert container.children.keys() == ["First"]

    @pytest.mark.asyncio
    async def test_reference(self, service, repository):
        about = repository.load("Root:Web:About")
        source = PageBindingModel(key="Test", featured_id=RelatedTopicReference(unique_key="Root:Web:About"))
        topic = await service.map(source)
        assert topic.attributes.get_integer("FeaturedId") == about.id

    @pytest.mark.asyncio
    async def test_unresolved_reference(self, service, web):
        target = web.children["Contact"]
        target.attributes.set_integer("FeaturedId", 1)
        source = PageBindingModel(key="Contact", featured_id=RelatedTopicReference(unique_key="Root:Web:Nope"))
        await service.map(source, target)
        assert target.attributes.get_integer("FeaturedId") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("source", "property_name"),
        [
            (PageBindingModel(key="Test", rank=11), "rank"),
            (PageBindingModel(key="Test", title=None), "title"),
            (PageBindingModel(key="Test", title=""), "title"),
        ],
    )
    async def test_validators(self, service, source, property_name):
        with pytest.raises(BindingModelValueError) as excinfo:
            await service.map(source)
        assert excinfo.value.property_name == property_name
        assert property_name in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_validators_run_before_mutation(self, service, web):
        target = web.children["Contact"]
        target.attributes.set_value("Description", "Before")
        with pytest.raises(BindingModelValueError):
            await service.map(PageBindingModel(key="Contact", description="After", rank=-1), target)
        assert target.attributes.get_value("Description") == "Before"

    @pytest.mark.asyncio
    async def test_invalid_shape_is_rejected_before_mutation(self, service, web):
        @dataclasses.dataclass
        class ScalarRelatedBindingModel(TopicBindingModel):
            key: str = ""
            content_type: str = "Page"
            title: typing.Optional[str] = None
            related: typing.Optional[RelatedTopicReference] = None

        target = web.children["Contact"]
        source = ScalarRelatedBindingModel(
            key="Contact", title="Changed", related=RelatedTopicReference(unique_key="Root:Web:About")
        )
        with pytest.raises(MappingModelValidationError):
            await service.map(source, target)
        assert target.title == "Contact"
        assert target.relationships.get_topics("Related") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (PageBindingModel(key=""), None),
            (PageBindingModel(key="Test", content_type=""), None),
            (PageBindingModel(key="Test", content_type="Nonexistent"), None),
            (PageBindingModel(key="Test"), Topic("Other", "Page")),
            (PageBindingModel(key="Test"), Topic("Test", "Comment")),
        ],
    )
    async def test_mismatches(self, service, source, target):
        with pytest.raises(MappingModelValidationError):
            await service.map(source, target)

    @pytest.mark.asyncio
    async def test_round_trip(self, service, repository, web):
        source = PageBindingModel(
            key="Test",
            title="Round trip",
            rank=7,
            is_featured=True,
            related=[RelatedTopicReference(unique_key="Root:Web:About")],
            comments=[CommentBindingModel(key="First", author="Jane", body="Hi")],
            featured_id=RelatedTopicReference(unique_key="Root:Web:Contact"),
        )
        topic = await service.map(source)
        web.children.add(topic)
        repository.save(topic, is_recursive=True)

        mapper = DefaultTopicMappingService(repository, TypeLookupService([PageViewModel, CommentViewModel]))
        result = mapper.map(topic)
        assert isinstance(result, PageViewModel)
        assert result.title == "Round trip"
        assert result.rank == 7
        assert result.is_featured is True
        assert [r.key for r in result.related] == ["About"]
        assert [(c.key, c.author, c.body) for c in result.comments] == [("First", "Jane", "Hi")]
        assert result.featured is not None
        assert result.featured.key == "Contact"
        assert result.parent is not None
        assert result.parent.key == "Web"

    @pytest.mark.asyncio
    async def test_repeated_nested_keys_are_rejected_before_mutation(self, service, web):
        target = Topic("Test", "Page", web)
        comments = Topic("Comments", "List", target)
        Topic("x", "Comment", comments)
        source = PageBindingModel(
            key="Test",
            title="Changed",
            comments=[CommentBindingModel(key="y"), CommentBindingModel(key="y", author="Again")],
        )
        with pytest.raises(MappingModelValidationError) as excinfo:
            await service.map(source, target)
        assert excinfo.value.property_name == "comments"
        assert target.title == "Test"
        assert comments.children.keys() == ["x"]
