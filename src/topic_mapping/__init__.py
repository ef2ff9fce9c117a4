from .caching import CachedHierarchicalTopicMappingService, CachedTopicMappingService  # noqa: F401
from .configuration import PropertyConfiguration, get_property_configurations  # noqa: F401
from .declarative import Prop, Range, Relationships, RelationshipType, Required, Validator  # noqa: F401
from .defaults import DEFAULT_SETTINGS, MappingSettings  # noqa: F401
from .exceptions import (  # noqa: F401
    BindingModelValueError,
    DuplicateKeyError,
    InvalidDeclarationError,
    InvalidKeyError,
    MappingModelValidationError,
    RepositoryError,
    TopicMappingException,
)
from .factory import TopicFactory  # noqa: F401
from .hierarchical import DefaultHierarchicalTopicMappingService  # noqa: F401
from .interfaces import (  # noqa: F401
    HierarchicalTopicMappingService,
    NavigationTopicViewModel,
    RelatedTopicBindingModel,
    ReverseTopicMappingService,
    TopicBindingModel,
    TopicMappingService,
    TopicRepository,
)
from .lookup import TypeLookupService  # noqa: F401
from .mapper import DefaultTopicMappingService  # noqa: F401
from .metadata import AttributeDescriptor, ContentTypeDescriptor, ModelType  # noqa: F401
from .models import AttributeValue, Topic  # noqa: F401
from .repositories import TopicRepositoryBase  # noqa: F401
from .reverse import DefaultReverseTopicMappingService  # noqa: F401
from .validation import BindingModelValidator  # noqa: F401
