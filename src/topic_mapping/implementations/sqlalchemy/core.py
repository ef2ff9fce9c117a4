import logging
import typing

import sqlalchemy as sa  # type: ignore
from sqlalchemy import exc as sa_exc  # type: ignore

from ...exceptions import RepositoryError
from ...factory import TopicFactory
from ...models import Topic
from ...repositories import TopicRepositoryBase, find_topic

logger = logging.getLogger(__name__)

metadata = sa.MetaData()

topics = sa.Table(
    "topics",
    metadata,
    sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
    sa.Column("key", sa.String(128), nullable=False),
    sa.Column("content_type", sa.String(128), nullable=False),
    sa.Column("parent_id", sa.Integer(), sa.ForeignKey("topics.id"), nullable=True),
    sa.UniqueConstraint("parent_id", "key"),
)

attributes = sa.Table(
    "attributes",
    metadata,
    sa.Column("topic_id", sa.Integer(), sa.ForeignKey(topics.c.id), primary_key=True),
    sa.Column("key", sa.String(128), primary_key=True),
    sa.Column("value", sa.Text(), nullable=False),
    sa.Column("last_modified", sa.DateTime(timezone=True), nullable=True),
)

relationships = sa.Table(
    "relationships",
    metadata,
    sa.Column("source_id", sa.Integer(), sa.ForeignKey(topics.c.id), primary_key=True),
    sa.Column("relationship_key", sa.String(128), primary_key=True),
    sa.Column("target_id", sa.Integer(), sa.ForeignKey(topics.c.id), primary_key=True),
    sa.Column("position", sa.Integer(), nullable=False),
)


def create_tables(engine: sa.engine.Engine) -> None:
    metadata.create_all(engine)


class SQLATopicRepository(TopicRepositoryBase):
    """
    A :class:`TopicRepository` persisting topics in three tables: ``topics``,
    ``attributes`` and ``relationships``.

    The whole graph is read on first access and kept in memory afterwards;
    saves and deletes are written through.
    """

    engine: sa.engine.Engine
    _root: typing.Optional[Topic]
    _topics_by_id: typing.Dict[int, Topic]
    _loaded: bool

    def load(self, unique_key_or_id: typing.Union[str, int, None] = None) -> typing.Optional[Topic]:
        root = self._load_graph()
        if isinstance(unique_key_or_id, int):
            return self._topics_by_id.get(unique_key_or_id)
        return find_topic(root, unique_key_or_id)

    def _load_graph(self) -> typing.Optional[Topic]:
        if self._loaded:
            return self._root
        try:
            with self.engine.connect() as conn:
                topic_rows = conn.execute(sa.select(topics).order_by(topics.c.id)).all()
                attribute_rows = conn.execute(sa.select(attributes)).all()
                relationship_rows = conn.execute(
                    sa.select(relationships).order_by(
                        relationships.c.source_id,
                        relationships.c.relationship_key,
                        relationships.c.position,
                    )
                ).all()
        except sa_exc.SQLAlchemyError as e:
            raise RepositoryError(f"failed to load topics: {e}") from e

        by_id: typing.Dict[int, Topic] = {}
        for row in topic_rows:
            by_id[row.id] = TopicFactory.create(row.key, row.content_type, id=row.id)
        root: typing.Optional[Topic] = None
        for row in topic_rows:
            topic = by_id[row.id]
            if row.parent_id is None:
                if root is not None:
                    raise RepositoryError(f"more than one root topic found ({root.key}, {topic.key})")
                root = topic
            else:
                topic.parent = by_id[row.parent_id]
        for row in attribute_rows:
            by_id[row.topic_id].attributes.set_value(
                row.key, row.value, is_dirty=False, last_modified=row.last_modified
            )
        for row in relationship_rows:
            by_id[row.source_id].relationships.set_topic(row.relationship_key, by_id[row.target_id])
        for topic in by_id.values():
            derived_id = topic.attributes.get_integer("TopicId", 0, inherit_from_derived=False)
            if derived_id > 0 and derived_id in by_id:
                topic.derived_topic = by_id[derived_id]
            topic.attributes.mark_clean()
            topic.relationships.mark_clean()

        logger.info("loaded %d topics", len(by_id))
        self._root = root
        self._topics_by_id = by_id
        self._loaded = True
        return root

    def save(self, topic: Topic, is_recursive: bool = False) -> int:
        root = self._load_graph()
        if topic.parent is None and root is not None and topic is not root:
            raise RepositoryError(f"a root topic ({root.key}) already exists")
        # ids are handed out only once the transaction commits
        assigned: typing.Dict[int, int] = {}
        saved: typing.List[Topic] = []
        try:
            with self.engine.begin() as conn:
                self._save(conn, topic, is_recursive, saved, assigned)
                # relationships go last so targets saved in the same pass have ids
                for t in saved:
                    self._save_relationships(conn, t, assigned)
        except sa_exc.SQLAlchemyError as e:
            raise RepositoryError(f"failed to save {topic.get_unique_key()}: {e}") from e
        for t in saved:
            if id(t) in assigned:
                t.id = assigned[id(t)]
                logger.debug("inserted %s as %d", t.get_unique_key(), t.id)
            self._topics_by_id[t.id] = t
            t.attributes.mark_clean()
            t.relationships.mark_clean()
        if topic.parent is None:
            self._root = topic
        return topic.id

    @staticmethod
    def _id_of(topic: Topic, assigned: typing.Mapping[int, int]) -> int:
        return assigned.get(id(topic), topic.id)

    def _save(
        self,
        conn: sa.engine.Connection,
        topic: Topic,
        is_recursive: bool,
        saved: typing.List[Topic],
        assigned: typing.Dict[int, int],
    ) -> None:
        parent_id: typing.Optional[int] = None
        if topic.parent is not None:
            parent_id = self._id_of(topic.parent, assigned)
            if parent_id <= 0:
                raise RepositoryError(f"the parent of {topic.get_unique_key()} has not been saved yet")
        values = dict(key=topic.key, content_type=topic.content_type, parent_id=parent_id)
        if topic.id > 0:
            topic_id = topic.id
            conn.execute(sa.update(topics).where(topics.c.id == topic_id).values(**values))
        else:
            result = conn.execute(sa.insert(topics).values(**values))
            topic_id = assigned[id(topic)] = result.inserted_primary_key[0]

        if topic.derived_topic is not None:
            derived_id = self._id_of(topic.derived_topic, assigned)
            if derived_id > 0:
                topic.attributes.set_integer("TopicId", derived_id)
        if topic.attributes.is_dirty() or topic.id <= 0:
            conn.execute(sa.delete(attributes).where(attributes.c.topic_id == topic_id))
            rows = [
                dict(topic_id=topic_id, key=v.key, value=v.value, last_modified=v.last_modified)
                for v in topic.attributes
            ]
            if rows:
                conn.execute(sa.insert(attributes), rows)
        saved.append(topic)

        if is_recursive:
            for child in topic.children:
                self._save(conn, child, True, saved, assigned)

    def _save_relationships(
        self, conn: sa.engine.Connection, topic: Topic, assigned: typing.Mapping[int, int]
    ) -> None:
        if not topic.relationships.is_dirty():
            return
        source_id = self._id_of(topic, assigned)
        conn.execute(sa.delete(relationships).where(relationships.c.source_id == source_id))
        rows = []
        for scope in topic.relationships.keys():
            for position, related in enumerate(topic.relationships.get_topics(scope)):
                target_id = self._id_of(related, assigned)
                if target_id <= 0:
                    logger.debug("not persisting the relationship %s of %s to the unsaved %s", scope, topic, related)
                    continue
                rows.append(dict(source_id=source_id, relationship_key=scope, target_id=target_id, position=position))
        if rows:
            conn.execute(sa.insert(relationships), rows)

    def delete(self, topic: Topic) -> None:
        self._load_graph()
        subtree = [topic, *topic.iter_descendants()]
        ids = [t.id for t in subtree if t.id > 0]
        try:
            with self.engine.begin() as conn:
                if ids:
                    conn.execute(
                        sa.delete(relationships).where(
                            sa.or_(relationships.c.source_id.in_(ids), relationships.c.target_id.in_(ids))
                        )
                    )
                    conn.execute(sa.delete(attributes).where(attributes.c.topic_id.in_(ids)))
                    for id_ in reversed(ids):
                        conn.execute(sa.delete(topics).where(topics.c.id == id_))
        except sa_exc.SQLAlchemyError as e:
            raise RepositoryError(f"failed to delete {topic.get_unique_key()}: {e}") from e

        for t in subtree:
            t.relationships.clear()
            for scope in t.incoming_relationships.keys():
                for source in t.incoming_relationships.get_topics(scope):
                    source.relationships.remove_topic(scope, t)
            self._topics_by_id.pop(t.id, None)
        topic.parent = None
        if topic is self._root:
            self._root = None

    def __init__(self, engine: sa.engine.Engine):
        self.engine = engine
        self._root = None
        self._topics_by_id = {}
        self._loaded = False
