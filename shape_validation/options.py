"""
    Options for validation calls, and block-scoped defaults for them.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
import typing
from typing import Any, Optional, Union


class ValidationOptions(typing.NamedTuple):
    """
    Options for a single validation call.

    - ``path``: the path of the root value, prepended to every error path;
    - ``strict``: if not :obj:`None`, overrides the ``strict`` flag of every
      struct and interface type encountered;
    - ``context``: arbitrary value passed to refinement predicates and
      custom error message formatters.
    """

    path: typing.Tuple[Union[str, int], ...] = ()
    strict: Optional[bool] = None
    context: Any = None


_default_options: ContextVar[ValidationOptions] = ContextVar(
    "shape_validation_default_options", default=ValidationOptions()
)
r"""
    Current default options, used by validation calls which don't set them.
"""


@contextmanager
def validation_options(**overrides: Any) -> Iterator[ValidationOptions]:
    r"""
    Sets default options for all validation calls in the block, e.g. to
    validate every struct and interface strictly and pass a context along:

    >>> with validation_options(strict=True, context=db):
    ...     result = await validate(payload, Order)

    Options given explicitly to a validation call take precedence.
    Blocks nest, and each asyncio task sees the defaults of the context it
    was created in.

    :raises TypeError: if an unknown option name is given
    """
    unknown = sorted(set(overrides) - set(ValidationOptions._fields))
    if unknown:
        raise TypeError(f"Unknown validation options: {', '.join(unknown)}")
    if "path" in overrides:
        overrides["path"] = tuple(overrides["path"] or ())
    options = _default_options.get()._replace(**overrides)
    token = _default_options.set(options)
    try:
        yield options
    finally:
        _default_options.reset(token)


def current_options() -> ValidationOptions:
    """The default options currently in effect."""
    return _default_options.get()


def normalize_options(options: Any = None) -> ValidationOptions:
    """
    Normalizes the ``options`` argument of the validation functions:

    - :obj:`None` gives the current defaults;
    - a :class:`ValidationOptions` is used as-is;
    - a :obj:`list` or :obj:`tuple` is the initial path (kept for backward
      compatibility), other options being the current defaults;
    - a mapping overrides the current defaults with its ``path``,
      ``strict`` and ``context`` entries.

    :raises TypeError: if ``options`` is of none of the above forms, or
                       a mapping with unknown keys
    """
    defaults = _default_options.get()
    if options is None:
        return defaults
    if isinstance(options, ValidationOptions):
        return options
    if isinstance(options, (list, tuple)):
        return defaults._replace(path=tuple(options))
    if isinstance(options, Mapping):
        unknown = sorted(set(options) - set(ValidationOptions._fields))
        if unknown:
            raise TypeError(f"Unknown validation options: {', '.join(unknown)}")
        overrides = dict(options)
        if "path" in overrides:
            overrides["path"] = tuple(overrides["path"] or ())
        return defaults._replace(**overrides)
    raise TypeError(
        f"Expected options to be None, a path, a mapping or ValidationOptions, "
        f"found {options!r}"
    )
