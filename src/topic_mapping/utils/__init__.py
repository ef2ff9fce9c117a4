from .naming import pascal_case, snake_case  # noqa: F401
from .tasks import drain  # noqa: F401
from .types import UNSPECIFIED, UnspecifiedType, maybe_unspecified  # noqa: F401
from .typing import (  # noqa: F401
    get_concrete_list_type,
    get_element_type,
    is_list_type,
    strip_annotated,
    unwrap_optional,
)
