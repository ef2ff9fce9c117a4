from .core import SQLATopicRepository, attributes, create_tables, metadata, relationships, topics  # noqa: F401
