import dataclasses
import typing

from ..declarative import Prop, Relationships
from ..factory import TopicFactory
from ..interfaces import NavigationTopicViewModel, RelatedTopicBindingModel
from ..metadata import AttributeDescriptor, ContentTypeDescriptor
from ..models import Topic
from ..repositories import TopicRepositoryBase, find_topic


def add_attribute(content_type: ContentTypeDescriptor, key: str, editor_type: str = "TextBox", **values: str) -> AttributeDescriptor:
    container = content_type.children.get("Attributes")
    if container is None:
        container = TopicFactory.create("Attributes", "List", content_type)
    descr = TopicFactory.create(key, "AttributeDescriptor", container)
    descr.attributes.set_value("Type", editor_type)
    for k, v in values.items():
        descr.attributes.set_value(k, v)
    assert isinstance(descr, AttributeDescriptor)
    return descr


def build_content_types(configuration: Topic) -> ContentTypeDescriptor:
    content_types = typing.cast(ContentTypeDescriptor, TopicFactory.create("ContentTypes", "ContentTypeDescriptor", configuration))
    for key in ("Key", "ContentType", "Title", "Description", "View"):
        add_attribute(content_types, key)
    add_attribute(content_types, "IsHidden", "Checkbox")
    add_attribute(content_types, "IsDisabled", "Checkbox")

    page = typing.cast(ContentTypeDescriptor, TopicFactory.create("Page", "ContentTypeDescriptor", content_types))
    add_attribute(page, "Rank", "Number")
    add_attribute(page, "IsFeatured", "Checkbox")
    add_attribute(page, "Related", "Relationships.ascx")
    add_attribute(page, "Comments", "TopicList.ascx")
    add_attribute(page, "FeaturedId", "TopicLookup")
    add_attribute(page, "Featured", "TopicLookup")
    add_attribute(page, "ContactName")
    add_attribute(page, "ContactEmail")

    article = typing.cast(ContentTypeDescriptor, TopicFactory.create("Article", "ContentTypeDescriptor", page))
    add_attribute(article, "Byline")

    comment = typing.cast(ContentTypeDescriptor, TopicFactory.create("Comment", "ContentTypeDescriptor", content_types))
    add_attribute(comment, "Author")
    add_attribute(comment, "Body")

    TopicFactory.create("List", "ContentTypeDescriptor", content_types)
    TopicFactory.create("Container", "ContentTypeDescriptor", content_types)
    TopicFactory.create("LookupListItem", "ContentTypeDescriptor", content_types)
    return content_types


class StubTopicRepository(TopicRepositoryBase):
    """
    An in-memory repository holding a small site:

    * ``Root:Configuration:ContentTypes`` with the ``Page``, ``Article`` and ``Comment`` content types
    * ``Root:Configuration:Metadata:Categories:LookupList`` with two categories
    * ``Root:Web`` with a handful of pages
    """

    root: Topic
    _next_id: int

    def load(self, unique_key_or_id: typing.Union[str, int, None] = None) -> typing.Optional[Topic]:
        return find_topic(self.root, unique_key_or_id)

    def save(self, topic: Topic, is_recursive: bool = False) -> int:
        if topic.id <= 0:
            topic.id = self._next_id
            self._next_id += 1
        topic.attributes.mark_clean()
        topic.relationships.mark_clean()
        if is_recursive:
            for child in topic.children:
                self.save(child, True)
        return topic.id

    def delete(self, topic: Topic) -> None:
        topic.parent = None

    def __init__(self):
        self._next_id = 1
        self.root = Topic("Root", "Container")
        configuration = Topic("Configuration", "Container", self.root)
        build_content_types(configuration)
        metadata = Topic("Metadata", "Container", configuration)
        categories = Topic("Categories", "Container", metadata)
        lookup_list = Topic("LookupList", "List", categories)
        for key, title in (("News", "News"), ("Events", "Events")):
            Topic(key, "LookupListItem", lookup_list).title = title

        web = Topic("Web", "Page", self.root)
        web.title = "Home"
        about = Topic("About", "Page", web)
        about.title = "About Us"
        Topic("Team", "Page", about).title = "Our Team"
        Topic("History", "Page", about).title = "Our History"
        contact = Topic("Contact", "Page", web)
        contact.title = "Contact"
        hidden = Topic("Hidden", "Page", web)
        hidden.is_hidden = True
        disabled = Topic("Disabled", "Page", web)
        disabled.is_disabled = True
        self.save(self.root, is_recursive=True)


@dataclasses.dataclass
class TopicViewModel:
    id: int = -1
    key: str = ""
    content_type: str = ""
    unique_key: str = ""
    web_path: str = ""
    title: typing.Optional[str] = None
    is_hidden: bool = False


@dataclasses.dataclass
class PageViewModel(TopicViewModel):
    description: typing.Optional[str] = None
    rank: int = 0
    is_featured: bool = False
    related: typing.List[TopicViewModel] = dataclasses.field(default_factory=list)
    children: typing.List[TopicViewModel] = dataclasses.field(default_factory=list)
    comments: typing.List["CommentViewModel"] = dataclasses.field(default_factory=list)
    parent: typing.Optional[TopicViewModel] = None
    featured: typing.Optional[TopicViewModel] = None


@dataclasses.dataclass
class ArticleViewModel(PageViewModel):
    byline: typing.Optional[str] = None


@dataclasses.dataclass
class CommentViewModel(TopicViewModel):
    author: typing.Optional[str] = None
    body: typing.Optional[str] = None


@dataclasses.dataclass
class FollowingPageViewModel(TopicViewModel):
    related: typing.Annotated[
        typing.List["FollowingPageViewModel"], Prop(follow=Relationships.RELATIONSHIPS)
    ] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class NavigationViewModel(NavigationTopicViewModel):
    key: str = ""
    title: typing.Optional[str] = None
    web_path: str = ""
    children: typing.List["NavigationViewModel"] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class RelatedTopicReference(RelatedTopicBindingModel):
    unique_key: str = ""
