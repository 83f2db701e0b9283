"""
    Core validation functionality: dispatch on descriptor kind, the
    validators for each kind, and the validation entry points.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, MutableMapping
import inspect
import logging
import typing
from typing import Any, Awaitable, Optional, Protocol

from .combinators import Nil, get_type_name, is_type
from .options import ValidationOptions, normalize_options
from .validation_error import Path, ValidationError, ValidationResult

_log = logging.getLogger(__name__)

CLASS_KIND = "class"
"""
    Registry key of the validator used for plain classes (values which are
    not descriptors).
"""


class UnsupportedKindError(ValueError):
    """
    Class for errors raised when attempting to validate against a descriptor
    whose kind has no registered validator, or against something which is
    neither a descriptor nor a class.
    """


class AsyncValidationRequired(RuntimeError):
    """
    Class for errors raised by :func:`validate_sync` when an error message
    formatter or a refinement predicate suspends, so that the validation
    can only complete inside an event loop.
    """


class KindValidator(Protocol):
    """
    Structural type for the validator of a descriptor kind.
    """

    def __call__(
        self,
        validator: Validator,
        value: Any,
        t: Any,
        path: Path,
        options: ValidationOptions,
    ) -> Awaitable[ValidationResult]:
        """
        Validates ``value`` against ``t`` at ``path``, using
        ``validator.recurse`` for nested descriptors.
        """


class KindRegistry(MutableMapping[str, KindValidator]):
    """
    Mutable mapping from descriptor kinds to their validators.
    Plain classes are validated by the entry for :data:`CLASS_KIND`.

    Validators for new kinds, or replacements for existing ones, can be
    added by item assignment or with the :meth:`register` decorator:

    >>> registry = default_registry()
    >>> @registry.register("even")
    ... async def validate_even(validator, value, t, path, options):
    ...     if isinstance(value, int) and value % 2 == 0:
    ...         return ValidationResult((), value)
    ...     return await failure(value, t, path, options)
    ...
    >>> v = Validator(registry)
    """

    _validators: typing.Dict[str, KindValidator]

    def __init__(
        self, validators: Optional[Mapping[str, KindValidator]] = None
    ) -> None:
        self._validators = dict(validators) if validators is not None else {}

    def __getitem__(self, kind: str) -> KindValidator:
        return self._validators[kind]

    def __setitem__(self, kind: str, kind_validator: KindValidator) -> None:
        if not callable(kind_validator):
            raise TypeError(
                f"Expected callable validator for kind {kind!r}, "
                f"got {kind_validator!r}."
            )
        if kind in self._validators:
            _log.debug("Overriding validator for kind %r", kind)
        else:
            _log.debug("Registering validator for kind %r", kind)
        self._validators[kind] = kind_validator

    def __delitem__(self, kind: str) -> None:
        del self._validators[kind]

    def __iter__(self) -> Iterator[str]:
        return iter(self._validators)

    def __len__(self) -> int:
        return len(self._validators)

    def register(self, kind: str) -> Callable[[KindValidator], KindValidator]:
        """
        Decorator registering the decorated function as the validator for
        the given kind.
        """

        def decorator(kind_validator: KindValidator) -> KindValidator:
            self[kind] = kind_validator
            return kind_validator

        return decorator

    def copy(self) -> KindRegistry:
        """A new registry with the same entries."""
        return KindRegistry(self._validators)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({sorted(self._validators)!r})"


_builtin_validators: typing.Dict[str, KindValidator] = {}
r"""
    Validators for the builtin kinds, copied into every new registry.
"""


def _builtin(*kinds: str) -> Callable[[KindValidator], KindValidator]:
    def decorator(kind_validator: KindValidator) -> KindValidator:
        for kind in kinds:
            _builtin_validators[kind] = kind_validator
        return kind_validator

    return decorator


def default_registry() -> KindRegistry:
    """A new registry holding the validators for all builtin kinds."""
    return KindRegistry(_builtin_validators)


def _run_sync(coro: typing.Coroutine[Any, Any, ValidationResult]) -> ValidationResult:
    """
    Runs a validation coroutine to completion without an event loop.
    This only works if nothing awaited along the way actually suspends.
    """
    try:
        coro.send(None)
    except StopIteration as e:
        return typing.cast(ValidationResult, e.value)
    coro.close()
    raise AsyncValidationRequired(
        "Validation suspended on an asynchronous error message or predicate, "
        "use 'await validate(...)' instead."
    )


class Validator:
    """
    Dispatches validation of a value against a descriptor to the validator
    registered for the descriptor's kind.

    Each instance owns a :class:`KindRegistry`, by default a fresh copy of
    the builtin validators, which can be customised without affecting other
    instances.
    """

    _registry: KindRegistry

    def __init__(self, registry: Optional[KindRegistry] = None) -> None:
        self._registry = registry if registry is not None else default_registry()
        _log.debug("Created validator with kinds %r", sorted(self._registry))

    @property
    def registry(self) -> KindRegistry:
        """The kind validators used by this instance."""
        return self._registry

    async def recurse(
        self, value: Any, t: Any, path: Path, options: ValidationOptions
    ) -> ValidationResult:
        """
        Validates ``value`` against ``t`` at ``path``: descriptors go to the
        validator for their kind, everything else to the plain class validator.

        :raises UnsupportedKindError: if no validator is registered for the kind
        """
        kind = t.kind if is_type(t) else CLASS_KIND
        try:
            kind_validator = self._registry[kind]
        except KeyError:
            raise UnsupportedKindError(
                f"No validator registered for kind {kind!r} "
                f"of type {get_type_name(t)}."
            ) from None
        return await kind_validator(self, value, t, path, options)

    async def validate(
        self, value: Any, t: Any, options: Any = None
    ) -> ValidationResult:
        """
        Validates ``value`` against ``t``, see :func:`validate`.
        """
        opts = normalize_options(options)
        return await self.recurse(value, t, opts.path, opts)

    def validate_sync(
        self, value: Any, t: Any, options: Any = None
    ) -> ValidationResult:
        """
        Validates ``value`` against ``t`` without an event loop,
        see :func:`validate_sync`.
        """
        return _run_sync(self.validate(value, t, options))

    def can_validate(self, t: Any) -> bool:
        """
        Whether every kind reachable from ``t`` has a registered validator.
        """
        return all(
            kind is not None and kind in self._registry
            for kind in _reachable_kinds(t)
        )


def _children(t: Any) -> Iterator[Any]:
    for attr in ("type", "domain", "codomain"):
        child = getattr(t, attr, None)
        if child is not None:
            yield child
    yield from getattr(t, "types", None) or ()
    props = getattr(t, "props", None)
    if isinstance(props, Mapping):
        yield from props.values()


def _reachable_kinds(t: Any) -> Iterator[Optional[str]]:
    """
    Kinds of all descriptors reachable from ``t``, with :obj:`None` for
    anything which is neither a descriptor nor a class.
    """
    seen: typing.Set[int] = set()
    stack = [t]
    while stack:
        t = stack.pop()
        if id(t) in seen:
            continue
        seen.add(id(t))
        if is_type(t):
            yield t.kind
            stack.extend(_children(t))
        elif isinstance(t, type):
            yield CLASS_KIND
        else:
            yield None


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _is_object(value: Any) -> bool:
    return isinstance(value, Mapping)


def _is_strict(t: Any, options: ValidationOptions) -> bool:
    if options.strict is not None:
        return options.strict
    return bool(getattr(t, "strict", False))


async def failure(
    value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """
    Result for a single failed check of ``value`` against ``t`` at ``path``.
    """
    error = await ValidationError.of(value, t, path, options.context)
    return ValidationResult((error,), value)


@_builtin(CLASS_KIND)
async def _validate_class(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """Basic validation using :func:`isinstance`"""
    if not isinstance(t, type):
        raise UnsupportedKindError(
            f"Cannot validate against {t!r}: it is neither a descriptor nor a class."
        )
    if isinstance(value, t):
        return ValidationResult((), value)
    return await failure(value, t, path, options)


@_builtin("irreducible", "enums")
async def _validate_irreducible(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """Validation using the descriptor's own membership test."""
    if t.is_(value):
        return ValidationResult((), value)
    return await failure(value, t, path, options)


@_builtin("list")
async def _validate_list(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """Validation of all items against the item type."""
    if not _is_array(value):
        return await failure(value, t, path, options)
    items: typing.List[Any] = []
    errors: typing.List[ValidationError] = []
    for idx, item in enumerate(value):
        res = await validator.recurse(item, t.type, (*path, idx), options)
        items.append(res.value)
        errors.extend(res.errors)
    return ValidationResult(errors, items)


@_builtin("tuple")
async def _validate_tuple(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """
    Validation of each position against its own type. Shorter sequences are
    accepted, with missing positions validated as :obj:`None`.
    """
    types = t.types
    if not _is_array(value) or len(value) > len(types):
        return await failure(value, t, path, options)
    items: typing.List[Any] = []
    errors: typing.List[ValidationError] = []
    for idx, item_t in enumerate(types):
        item = value[idx] if idx < len(value) else None
        res = await validator.recurse(item, item_t, (*path, idx), options)
        items.append(res.value)
        errors.extend(res.errors)
    return ValidationResult(errors, items)


@_builtin("struct")
async def _validate_struct(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """
    Validation of each declared field, with defaults for missing fields.
    On success, the fields are wrapped into an instance of the struct type.
    """
    if not _is_object(value):
        return await failure(value, t, path, options)
    if t.is_(value):
        return ValidationResult((), value)
    props: Mapping[str, Any] = t.props
    default_props: Mapping[str, Any] = getattr(t, "default_props", None) or {}
    fields: typing.Dict[str, Any] = {}
    errors: typing.List[ValidationError] = []
    for name, prop_t in props.items():
        actual = value.get(name)
        if actual is None:
            actual = default_props.get(name)
        res = await validator.recurse(actual, prop_t, (*path, name), options)
        fields[name] = res.value
        errors.extend(res.errors)
    if _is_strict(t, options):
        for field, field_value in value.items():
            if field not in props:
                errors.append(
                    await ValidationError.of(
                        field_value, Nil, (*path, field), options.context
                    )
                )
    if errors:
        return ValidationResult(errors, fields)
    return ValidationResult((), t.create(fields))


@_builtin("interface")
async def _validate_interface(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """
    Validation of each declared field. The result stays a plain dictionary
    and, in strict mode, undeclared fields are tolerated if :obj:`None`.
    """
    if not _is_object(value):
        return await failure(value, t, path, options)
    props: Mapping[str, Any] = t.props
    fields: typing.Dict[str, Any] = {}
    errors: typing.List[ValidationError] = []
    for name, prop_t in props.items():
        res = await validator.recurse(value.get(name), prop_t, (*path, name), options)
        fields[name] = res.value
        errors.extend(res.errors)
    if _is_strict(t, options):
        for field, field_value in value.items():
            if field not in props and field_value is not None:
                errors.append(
                    await ValidationError.of(
                        field_value, Nil, (*path, field), options.context
                    )
                )
    return ValidationResult(errors, fields)


@_builtin("dict")
async def _validate_dict(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """
    Validation of all keys against the domain and all values against the
    codomain. Key and value errors for the same entry share its path.
    """
    if not _is_object(value):
        return await failure(value, t, path, options)
    items: typing.Dict[Any, Any] = {}
    errors: typing.List[ValidationError] = []
    for key, item in value.items():
        subpath = (*path, key)
        key_res = await validator.recurse(key, t.domain, subpath, options)
        item_res = await validator.recurse(item, t.codomain, subpath, options)
        items[key] = item_res.value
        errors.extend(key_res.errors)
        errors.extend(item_res.errors)
    return ValidationResult(errors, items)


def _member_index(types: typing.Sequence[Any], member: Any) -> Optional[int]:
    for idx, t in enumerate(types):
        if t is member:
            return idx
    for idx, t in enumerate(types):
        if t == member:
            return idx
    return None


@_builtin("union")
async def _validate_union(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """
    Validation against the member type selected by the union's dispatch,
    awaited if asynchronous.
    The path is extended with the index of that member.
    """
    dispatch_async = getattr(t, "dispatch_async", None)
    if dispatch_async is not None:
        member = await dispatch_async(value, options.context)
    else:
        member = t.dispatch(value)
        if inspect.isawaitable(member):
            member = await member
    idx = _member_index(t.types, member) if member is not None else None
    if idx is None:
        return await failure(value, t, path, options)
    return await validator.recurse(value, member, (*path, idx), options)


@_builtin("intersection")
async def _validate_intersection(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """
    Validation against all member types, at the same path. An intersection
    of more than one struct type is always an error, since struct instances
    cannot be merged.
    """
    errors: typing.List[ValidationError] = []
    num_structs = 0
    for member in t.types:
        if is_type(member) and member.kind == "struct":
            num_structs += 1
        res = await validator.recurse(value, member, path, options)
        errors.extend(res.errors)
    if num_structs > 1:
        errors.append(await ValidationError.of(value, t, path, options.context))
    return ValidationResult(errors, value)


@_builtin("subtype")
async def _validate_subtype(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """
    Validation against the inner type and then, if that succeeds, against
    the predicate (which may be asynchronous).
    """
    res = await validator.recurse(value, t.type, path, options)
    if not res.is_valid():
        return res
    satisfied = t.predicate(res.value, options.context)
    if inspect.isawaitable(satisfied):
        satisfied = await satisfied
    if not satisfied:
        error = await ValidationError.of(value, t, path, options.context)
        return ValidationResult((error,), res.value)
    return res


@_builtin("maybe")
async def _validate_maybe(
    validator: Validator, value: Any, t: Any, path: Path, options: ValidationOptions
) -> ValidationResult:
    """:obj:`None` is always valid, anything else is validated against the inner type."""
    if value is None:
        return ValidationResult((), value)
    return await validator.recurse(value, t.type, path, options)


_default_validator = Validator()
r"""
    Validator used by the module-level validation functions.
"""


def default_validator() -> Validator:
    """
    The validator used by the module-level functions. Its registry can be
    extended to make new kinds available to :func:`validate`.
    """
    return _default_validator


async def validate(value: Any, t: Any, options: Any = None) -> ValidationResult:
    """
    Validates the value ``value`` against the descriptor (or class) ``t``,
    collecting all errors in a single pass:

    >>> from shape_validation import validate, struct, maybe, String, Number
    >>> Person = struct({"name": String, "age": maybe(Number)}, "Person")
    >>> print(await validate({"name": 1, "age": "x"}, Person))
    [ValidationResult, false, ('Invalid value 1 supplied to /name: String', "Invalid value 'x' supplied to /age: Number")]
    >>> res = await validate({"name": "Al"}, Person)
    >>> res.is_valid(), res.value
    (True, Person({'name': 'Al', 'age': None}))

    :param value: the value to be validated
    :type value: :obj:`~typing.Any`
    :param t: the descriptor or class to validate against
    :type t: :obj:`~typing.Any`
    :param options: :obj:`None`, a :class:`~shape_validation.options.ValidationOptions`,
                    a mapping with keys ``path``, ``strict`` and ``context``, or
                    (for backward compatibility) the initial path as a list
    :type options: :obj:`~typing.Any`
    :raises UnsupportedKindError: if validation for some kind in ``t`` is not supported
    :raises TypeError: if ``options`` is malformed
    """
    return await _default_validator.validate(value, t, options)


def validate_sync(value: Any, t: Any, options: Any = None) -> ValidationResult:
    """
    Performs the same functionality as :func:`validate`, but without an event
    loop. Asynchronous predicates and error message formatters are allowed
    as long as they don't actually suspend.

    :raises AsyncValidationRequired: if some predicate or formatter suspends
    """
    return _default_validator.validate_sync(value, t, options)


def is_valid(value: Any, t: Any, options: Any = None) -> bool:
    """
    Performs the same functionality as :func:`validate_sync`, returning
    whether the value is valid.
    """
    return validate_sync(value, t, options).is_valid()


def _type_error(result: ValidationResult) -> TypeError:
    """
    Type error listing all error messages of a failed validation.
    The result is attached as the ``validation_result`` attribute of the error.
    """
    lines = ["Runtime validation error raised by validated(val, t), details below."]
    lines.extend(result.messages)
    error = TypeError("\n".join(lines))
    setattr(error, "validation_result", result)
    return error


def validated(value: Any, t: Any, options: Any = None) -> Any:
    """
    Performs the same functionality as :func:`validate_sync`, but returns the
    normalized value if validation is successful and raises :obj:`TypeError`
    otherwise:

    .. code-block:: python

        person = validated({"name": "Al"}, Person)
        person.age # None

    The validation result is available from the error through
    :func:`~shape_validation.validation_error.get_validation_result`.

    :raises TypeError: if the value is not valid
    """
    result = validate_sync(value, t, options)
    if not result.is_valid():
        raise _type_error(result)
    return result.value


def can_validate(t: Any, registry: Optional[KindRegistry] = None) -> bool:
    """
    Checks whether validation is supported for the given descriptor ``t``,
    i.e. whether :func:`validate` can be called on it without raising
    :obj:`UnsupportedKindError`.

    If ``registry`` is given, support is checked against its kinds instead
    of those of the default validator.
    """
    if registry is not None:
        return Validator(registry).can_validate(t)
    return _default_validator.can_validate(t)
