import abc
import typing


class TopicMappingException(Exception, metaclass=abc.ABCMeta):
    def __str__(self):
        return str(getattr(self, "message", ""))


class InvalidDeclarationError(TopicMappingException):
    message: str

    def __init__(self, message: str):
        self.message = message


class MappingModelValidationError(TopicMappingException):
    """
    Raised when a binding model or a reverse mapping request does not line up
    with the content type schema.  This always indicates a defect in the
    model, never a transient condition.
    """

    message: str
    model_type: typing.Optional[type]
    property_name: typing.Optional[str]

    def __init__(
        self,
        message: str,
        model_type: typing.Optional[type] = None,
        property_name: typing.Optional[str] = None,
    ):
        self.message = message
        self.model_type = model_type
        self.property_name = property_name


class BindingModelValueError(TopicMappingException):
    model_type: type
    property_name: str
    detail: str

    @property
    def message(self):
        return f'property "{self.property_name}" of {self.model_type.__name__} is invalid: {self.detail}'

    def __init__(self, model_type: type, property_name: str, detail: str):
        self.model_type = model_type
        self.property_name = property_name
        self.detail = detail


class InvalidKeyError(TopicMappingException, ValueError):
    key: typing.Any

    @property
    def message(self):
        return f'"{self.key}" is not a valid key; only alphanumerics, periods, hyphens and underscores are permitted'

    def __init__(self, key: typing.Any):
        self.key = key


class DuplicateKeyError(TopicMappingException, KeyError):
    key: str
    container: str

    @property
    def message(self):
        return f'an item keyed "{self.key}" already exists in {self.container}'

    def __init__(self, key: str, container: str):
        self.key = key
        self.container = container


class RepositoryError(TopicMappingException):
    message: str

    def __init__(self, message: str):
        self.message = message
