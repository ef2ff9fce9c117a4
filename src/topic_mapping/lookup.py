import logging
import typing

from .defaults import DEFAULT_SETTINGS
from .models import validate_key

logger = logging.getLogger(__name__)

T = typing.TypeVar("T", bound=type)


class TypeLookupService:
    """
    Resolves the view model type of a content type.  A type named
    ``{ContentType}{suffix}`` (``PageViewModel`` with the default suffix) is
    registered for ``{ContentType}``; anything unregistered resolves to
    :attr:`default_type`.
    """

    default_type: type
    suffix: str
    _types: typing.Dict[str, type]

    def register(self, type_: T) -> T:
        name = type_.__name__
        if not name.endswith(self.suffix) or len(name) == len(self.suffix):
            raise ValueError(f"{name} does not follow the {{ContentType}}{self.suffix} convention")
        return self.register_as(name[: -len(self.suffix)], type_)

    def register_as(self, content_type: str, type_: T) -> T:
        validate_key(content_type)
        self._types[content_type] = type_
        return type_

    def lookup(self, content_type: str) -> type:
        type_ = self._types.get(content_type)
        if type_ is None:
            logger.debug("no view model registered for %s; falling back to %s", content_type, self.default_type.__name__)
            return self.default_type
        return type_

    def __contains__(self, content_type: object) -> bool:
        return content_type in self._types

    def __init__(
        self,
        types: typing.Iterable[type] = (),
        default_type: type = object,
        suffix: str = DEFAULT_SETTINGS.view_model_suffix,
    ):
        self.default_type = default_type
        self.suffix = suffix
        self._types = {}
        for type_ in types:
            self.register(type_)
