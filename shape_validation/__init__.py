"""
    Recursive structural validation against type descriptors.
"""

__version__ = "1.0.0"

from .combinators import (
    Type,
    Struct,
    irreducible,
    enums,
    enums_of,
    list_of,
    tuple_of,
    dict_of,
    struct,
    interface,
    union,
    intersection,
    refinement,
    subtype,
    maybe,
    get_type_name,
    is_type,
    AnyValue,
    Nil,
    String,
    Number,
    Integer,
    Boolean,
    Function,
    Object,
    Array,
    Error,
)
from .options import ValidationOptions, validation_options
from .validation import (
    validate,
    validate_sync,
    is_valid,
    validated,
    can_validate,
    default_validator,
    default_registry,
    failure,
    Validator,
    KindRegistry,
    UnsupportedKindError,
    AsyncValidationRequired,
)
from .validation_error import (
    ValidationError,
    ValidationResult,
    get_validation_result,
)
from .descriptor import Field

# re-export all descriptors and functions.
__all__ = [
    "validate",
    "validate_sync",
    "is_valid",
    "validated",
    "can_validate",
    "default_validator",
    "default_registry",
    "failure",
    "Validator",
    "KindRegistry",
    "UnsupportedKindError",
    "AsyncValidationRequired",
    "ValidationOptions",
    "validation_options",
    "ValidationError",
    "ValidationResult",
    "get_validation_result",
    "Field",
    "Type",
    "Struct",
    "irreducible",
    "enums",
    "enums_of",
    "list_of",
    "tuple_of",
    "dict_of",
    "struct",
    "interface",
    "union",
    "intersection",
    "refinement",
    "subtype",
    "maybe",
    "get_type_name",
    "is_type",
    "AnyValue",
    "Nil",
    "String",
    "Number",
    "Integer",
    "Boolean",
    "Function",
    "Object",
    "Array",
    "Error",
]
