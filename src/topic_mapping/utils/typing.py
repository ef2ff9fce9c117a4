import collections.abc
import typing

_list_like_origins = (
    list,
    collections.abc.MutableSequence,
    collections.abc.Sequence,
    collections.abc.Collection,
    collections.abc.Iterable,
)
_non_list_origins = (str, bytes, tuple, collections.abc.Mapping, collections.abc.Set)


def strip_annotated(hint: typing.Any) -> typing.Any:
    if typing.get_origin(hint) is typing.Annotated:
        return typing.get_args(hint)[0]
    return hint


def unwrap_optional(hint: typing.Any) -> typing.Any:
    """
    Returns the sole non-None member of ``Optional[X]`` or ``X | None``,
    or the hint itself otherwise.
    """
    hint = strip_annotated(hint)
    args = typing.get_args(hint)
    if args and type(None) in args:
        rest = [a for a in args if a is not type(None)]
        if len(rest) == 1:
            return rest[0]
    return hint


def is_list_type(hint: typing.Any) -> bool:
    hint = unwrap_optional(hint)
    if hint is str or hint is bytes:
        return False
    origin = typing.get_origin(hint)
    if origin is not None:
        return (
            isinstance(origin, type)
            and issubclass(origin, _list_like_origins)
            and not issubclass(origin, _non_list_origins)
        )
    return isinstance(hint, type) and issubclass(hint, list)


def get_element_type(hint: typing.Any) -> typing.Any:
    """
    Returns the element type of a list-shaped hint, ``typing.Any`` when the
    hint does not carry one.

    Subclasses of ``list`` parameterized through ``typing.Generic`` are
    searched through their ``__orig_bases__``.
    """
    hint = unwrap_optional(hint)
    args = typing.get_args(hint)
    if args:
        return strip_annotated(args[-1])
    if isinstance(hint, type):
        for klass in hint.__mro__:
            for base in getattr(klass, "__orig_bases__", ()):
                origin = typing.get_origin(base)
                if isinstance(origin, type) and issubclass(origin, list):
                    base_args = typing.get_args(base)
                    if base_args and not isinstance(base_args[0], typing.TypeVar):
                        return base_args[0]
    return typing.Any


def get_concrete_list_type(hint: typing.Any) -> typing.Type[list]:
    hint = unwrap_optional(hint)
    origin = typing.get_origin(hint) or hint
    if isinstance(origin, type) and issubclass(origin, list):
        return origin
    return list
