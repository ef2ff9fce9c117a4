import collections.abc
import dataclasses
import datetime
import re
import typing
from collections import OrderedDict

from .exceptions import DuplicateKeyError, InvalidKeyError

UNIQUE_KEY_DELIMITER = ":"

MAX_INHERITANCE_HOPS = 5

_key_re = re.compile(r"^[a-zA-Z0-9\.\-_]+$")

_truthy_values = frozenset(["1", "true", "True"])
_falsy_values = frozenset(["0", "false", "False"])


def validate_key(key: typing.Any, allow_empty: bool = False) -> str:
    if key is None or key == "":
        if allow_empty:
            return ""
        raise InvalidKeyError(key)
    if not isinstance(key, str) or _key_re.match(key) is None:
        raise InvalidKeyError(key)
    return key


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclasses.dataclass(frozen=True)
class AttributeValue:
    key: str
    value: str
    is_dirty: bool = True
    last_modified: datetime.datetime = dataclasses.field(default_factory=_utcnow)


class AttributeValueCollection(collections.abc.Collection):
    """
    A case-insensitive store of string attribute values belonging to a
    single :class:`Topic`.

    Lookups through :meth:`get_value` may fall back to the topic's derived
    topic, and optionally its ancestors, when no local value is present.
    """

    _topic: "Topic"
    _values: typing.Dict[str, AttributeValue]
    _has_removals: bool

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._values

    def __iter__(self) -> typing.Iterator[AttributeValue]:
        return iter(list(self._values.values()))

    def __len__(self) -> int:
        return len(self._values)

    def keys(self) -> typing.List[str]:
        return [v.key for v in self._values.values()]

    def get(self, key: str) -> typing.Optional[AttributeValue]:
        return self._values.get(key.lower())

    def get_value(
        self,
        key: str,
        default: typing.Optional[str] = None,
        inherit_from_parent: bool = False,
        inherit_from_derived: bool = True,
    ) -> typing.Optional[str]:
        """
        Retrieves the value of an attribute.

        :param str key: the attribute key.
        :param str default: the value to return when none is found.
        :param bool inherit_from_parent: whether to walk up the parent chain when the topic itself has no value.
        :param bool inherit_from_derived: whether to consult the derived topic chain (bounded in length).
        :return: the value, or ``default``.
        """
        validate_key(key)
        value = self._lookup(
            key,
            inherit_from_parent,
            MAX_INHERITANCE_HOPS if inherit_from_derived else 0,
        )
        return value if value else default

    def _lookup(self, key: str, inherit_from_parent: bool, max_hops: int) -> typing.Optional[str]:
        entry = self._values.get(key.lower())
        value = entry.value if entry is not None else None
        if not value and key != "TopicId" and max_hops > 0:
            derived = self._topic.derived_topic
            if derived is not None:
                value = derived.attributes._lookup(key, False, max_hops - 1)
        if not value and inherit_from_parent and self._topic.parent is not None:
            value = self._topic.parent.attributes._lookup(key, True, max_hops)
        return value

    def set_value(
        self,
        key: str,
        value: typing.Optional[str],
        is_dirty: typing.Optional[bool] = None,
        last_modified: typing.Optional[datetime.datetime] = None,
    ) -> None:
        validate_key(key)
        lowered = key.lower()
        existing = self._values.get(lowered)
        if value is None or value == "":
            if existing is not None:
                del self._values[lowered]
                self._has_removals = True
            return
        if not isinstance(value, str):
            raise TypeError(f"attribute values must be strings, got {type(value).__name__}")
        if existing is not None and existing.value == value:
            if is_dirty is not None and existing.is_dirty != is_dirty:
                self._values[lowered] = dataclasses.replace(existing, is_dirty=is_dirty)
            return
        self._values[lowered] = AttributeValue(
            key=key,
            value=value,
            is_dirty=True if is_dirty is None else is_dirty,
            last_modified=last_modified if last_modified is not None else _utcnow(),
        )

    def remove(self, key: str) -> bool:
        if self._values.pop(key.lower(), None) is None:
            return False
        self._has_removals = True
        return True

    def get_integer(
        self,
        key: str,
        default: int = 0,
        inherit_from_parent: bool = False,
        inherit_from_derived: bool = True,
    ) -> int:
        value = self.get_value(key, None, inherit_from_parent, inherit_from_derived)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def set_integer(self, key: str, value: typing.Optional[int], is_dirty: typing.Optional[bool] = None) -> None:
        self.set_value(key, None if value is None else str(value), is_dirty)

    def get_boolean(
        self,
        key: str,
        default: bool = False,
        inherit_from_parent: bool = False,
        inherit_from_derived: bool = True,
    ) -> bool:
        value = self.get_value(key, None, inherit_from_parent, inherit_from_derived)
        if value in _truthy_values:
            return True
        elif value in _falsy_values:
            return False
        return default

    def set_boolean(self, key: str, value: typing.Optional[bool], is_dirty: typing.Optional[bool] = None) -> None:
        self.set_value(key, None if value is None else ("1" if value else "0"), is_dirty)

    def get_datetime(
        self,
        key: str,
        default: typing.Optional[datetime.datetime] = None,
        inherit_from_parent: bool = False,
    ) -> typing.Optional[datetime.datetime]:
        value = self.get_value(key, None, inherit_from_parent)
        if value is None:
            return default
        try:
            return datetime.datetime.fromisoformat(value)
        except ValueError:
            return default

    def is_dirty(self, key: typing.Optional[str] = None) -> bool:
        if key is not None:
            entry = self._values.get(key.lower())
            return entry is not None and entry.is_dirty
        return self._has_removals or any(v.is_dirty for v in self._values.values())

    def mark_clean(self) -> None:
        for lowered, entry in list(self._values.items()):
            if entry.is_dirty:
                self._values[lowered] = dataclasses.replace(entry, is_dirty=False)
        self._has_removals = False

    def __init__(self, topic: "Topic"):
        self._topic = topic
        self._values = OrderedDict()
        self._has_removals = False


class TopicCollection(collections.abc.Collection):
    """
    The ordered, keyed children of a topic.  Membership is kept in step with
    :attr:`Topic.parent`.
    """

    _owner: "Topic"
    _items: typing.Dict[str, "Topic"]

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Topic):
            return self._items.get(item.key) is item
        return item in self._items

    def __iter__(self) -> typing.Iterator["Topic"]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, key: typing.Union[str, int]) -> "Topic":
        if isinstance(key, int):
            return list(self._items.values())[key]
        return self._items[key]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._items)!r})"

    def keys(self) -> typing.List[str]:
        return list(self._items)

    def get(self, key: str) -> typing.Optional["Topic"]:
        return self._items.get(key)

    def add(self, topic: "Topic") -> None:
        topic.parent = self._owner

    def remove(self, topic_or_key: typing.Union["Topic", str]) -> bool:
        topic = self._items.get(topic_or_key) if isinstance(topic_or_key, str) else topic_or_key
        if topic is None or self._items.get(topic.key) is not topic:
            return False
        topic.parent = None
        return True

    def _append(self, topic: "Topic") -> None:
        if topic.key in self._items:
            raise DuplicateKeyError(topic.key, self._owner.get_unique_key())
        self._items[topic.key] = topic

    def _discard(self, topic: "Topic") -> None:
        if self._items.get(topic.key) is topic:
            del self._items[topic.key]

    def _rekey(self, old_key: str, new_key: str) -> None:
        if new_key in self._items:
            raise DuplicateKeyError(new_key, self._owner.get_unique_key())
        self._items = OrderedDict(
            (new_key if k == old_key else k, v) for k, v in self._items.items()
        )

    def __init__(self, owner: "Topic"):
        self._owner = owner
        self._items = OrderedDict()


class RelatedTopicCollection:
    """
    Named scopes of related topics.

    The outgoing collection of a topic keeps the incoming collection of every
    related topic in step: relating A to B under a scope registers A as an
    incoming relationship of B under the same scope.
    """

    _owner: "Topic"
    _is_incoming: bool
    _scopes: typing.Dict[str, typing.List["Topic"]]
    _is_dirty: bool

    def __contains__(self, scope: object) -> bool:
        return scope in self._scopes and bool(self._scopes[scope])

    def __iter__(self) -> typing.Iterator[str]:
        return iter(list(self._scopes))

    def __len__(self) -> int:
        return len(self._scopes)

    def keys(self) -> typing.List[str]:
        return [k for k, v in self._scopes.items() if v]

    def get_topics(self, scope: str) -> typing.List["Topic"]:
        return list(self._scopes.get(scope, ()))

    def get_topic(self, scope: str, key: str) -> typing.Optional["Topic"]:
        for topic in self._scopes.get(scope, ()):
            if topic.key == key:
                return topic
        return None

    def contains(self, scope: str, topic_or_key: typing.Union["Topic", str, None] = None) -> bool:
        topics = self._scopes.get(scope, ())
        if topic_or_key is None:
            return bool(topics)
        elif isinstance(topic_or_key, str):
            return any(t.key == topic_or_key for t in topics)
        return any(t is topic_or_key for t in topics)

    def set_topic(self, scope: str, topic: "Topic") -> None:
        validate_key(scope)
        topics = self._scopes.setdefault(scope, [])
        if any(t is topic for t in topics):
            return
        topics.append(topic)
        if not self._is_incoming:
            self._is_dirty = True
            topic.incoming_relationships.set_topic(scope, self._owner)

    def remove_topic(self, scope: str, topic_or_key: typing.Union["Topic", str]) -> bool:
        topics = self._scopes.get(scope)
        if not topics:
            return False
        for i, topic in enumerate(topics):
            if topic is topic_or_key or topic.key == topic_or_key:
                del topics[i]
                break
        else:
            return False
        if not self._is_incoming:
            self._is_dirty = True
            topic.incoming_relationships.remove_topic(scope, self._owner)
        return True

    def clear(self, scope: typing.Optional[str] = None) -> None:
        scopes = list(self._scopes) if scope is None else [scope]
        for s in scopes:
            for topic in self.get_topics(s):
                self.remove_topic(s, topic)

    def is_dirty(self) -> bool:
        return self._is_dirty

    def mark_clean(self) -> None:
        self._is_dirty = False

    def __init__(self, owner: "Topic", is_incoming: bool = False):
        self._owner = owner
        self._is_incoming = is_incoming
        self._scopes = OrderedDict()
        self._is_dirty = False


class Topic:
    """
    A keyed node in the content tree.
    """

    content_type: str
    children: TopicCollection
    attributes: AttributeValueCollection
    relationships: RelatedTopicCollection
    incoming_relationships: RelatedTopicCollection
    _id: int
    _key: str
    _parent: typing.Optional["Topic"]
    _derived_topic: typing.Optional["Topic"]

    @property
    def id(self) -> int:
        return self._id

    @id.setter
    def id(self, value: int) -> None:
        if self._id > 0 and value != self._id:
            raise ValueError(f"{self!r} already has the id {self._id}")
        self._id = value

    @property
    def key(self) -> str:
        return self._key

    @key.setter
    def key(self, value: str) -> None:
        validate_key(value)
        if value == self._key:
            return
        if self._parent is not None:
            self._parent.children._rekey(self._key, value)
        self._key = value

    @property
    def parent(self) -> typing.Optional["Topic"]:
        return self._parent

    @parent.setter
    def parent(self, value: typing.Optional["Topic"]) -> None:
        if value is self._parent:
            return
        if value is not None:
            ancestor: typing.Optional[Topic] = value
            while ancestor is not None:
                if ancestor is self:
                    raise ValueError(f"{self!r} cannot be moved beneath itself")
                ancestor = ancestor._parent
            value.children._append(self)
        if self._parent is not None:
            self._parent.children._discard(self)
        self._parent = value

    @property
    def derived_topic(self) -> typing.Optional["Topic"]:
        return self._derived_topic

    @derived_topic.setter
    def derived_topic(self, value: typing.Optional["Topic"]) -> None:
        if value is self:
            raise ValueError(f"{self!r} cannot derive from itself")
        self._derived_topic = value
        self.attributes.set_integer(
            "TopicId", value.id if value is not None and value.id > 0 else None
        )

    @property
    def title(self) -> str:
        return self.attributes.get_value("Title", self._key) or self._key

    @title.setter
    def title(self, value: typing.Optional[str]) -> None:
        self.attributes.set_value("Title", value)

    @property
    def description(self) -> typing.Optional[str]:
        return self.attributes.get_value("Description")

    @description.setter
    def description(self, value: typing.Optional[str]) -> None:
        self.attributes.set_value("Description", value)

    @property
    def view(self) -> typing.Optional[str]:
        return self.attributes.get_value("View")

    @view.setter
    def view(self, value: typing.Optional[str]) -> None:
        self.attributes.set_value("View", value)

    @property
    def is_hidden(self) -> bool:
        return self.attributes.get_boolean("IsHidden")

    @is_hidden.setter
    def is_hidden(self, value: bool) -> None:
        self.attributes.set_boolean("IsHidden", value or None)

    @property
    def is_disabled(self) -> bool:
        return self.attributes.get_boolean("IsDisabled")

    @is_disabled.setter
    def is_disabled(self, value: bool) -> None:
        self.attributes.set_boolean("IsDisabled", value or None)

    @property
    def last_modified(self) -> typing.Optional[datetime.datetime]:
        stamps = [v.last_modified for v in self.attributes]
        return max(stamps) if stamps else None

    def is_visible(self, show_disabled: bool = False) -> bool:
        return not self.is_hidden and (show_disabled or not self.is_disabled)

    def get_unique_key(self) -> str:
        keys = []
        topic: typing.Optional[Topic] = self
        while topic is not None:
            keys.append(topic._key)
            topic = topic._parent
        return UNIQUE_KEY_DELIMITER.join(reversed(keys))

    def get_web_path(self) -> str:
        keys = []
        topic: typing.Optional[Topic] = self
        while topic is not None and topic._parent is not None:
            keys.append(topic._key)
            topic = topic._parent
        return "/" + "".join(f"{k}/" for k in reversed(keys))

    def get_depth(self) -> int:
        depth = 0
        topic = self._parent
        while topic is not None:
            depth += 1
            topic = topic._parent
        return depth

    def iter_descendants(self) -> typing.Iterator["Topic"]:
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def find_first(self, predicate: typing.Callable[["Topic"], bool]) -> typing.Optional["Topic"]:
        if predicate(self):
            return self
        for topic in self.iter_descendants():
            if predicate(topic):
                return topic
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.get_unique_key()} ({self.content_type}, id={self._id})>"

    def __init__(
        self,
        key: str,
        content_type: str,
        parent: typing.Optional["Topic"] = None,
        id: int = -1,
    ):
        self._key = validate_key(key)
        self.content_type = validate_key(content_type)
        self._id = id
        self._parent = None
        self._derived_topic = None
        self.children = TopicCollection(self)
        self.attributes = AttributeValueCollection(self)
        self.relationships = RelatedTopicCollection(self)
        self.incoming_relationships = RelatedTopicCollection(self, is_incoming=True)
        if parent is not None:
            self.parent = parent
