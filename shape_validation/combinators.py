"""
    Type descriptors which can be validated against: irreducibles, enums,
    structs, interfaces, lists, tuples, dicts, unions, intersections,
    refinements and maybes.

    The validation core only relies on the attributes documented on
    :class:`Type` (``kind`` plus kind-specific metadata), so descriptors
    from elsewhere can be used as long as they expose the same interface.
    Plain Python classes are also accepted, and checked with :func:`isinstance`.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterator, Mapping
import inspect
import math
from types import MappingProxyType
import typing
from typing import Any, Optional, Union

KINDS = frozenset(
    {
        "irreducible",
        "enums",
        "list",
        "tuple",
        "struct",
        "interface",
        "dict",
        "union",
        "intersection",
        "subtype",
        "maybe",
    }
)
"""
    The descriptor kinds understood by the default validator registry.
"""

ErrorMessageFunction = Callable[[Any, typing.Tuple[Union[str, int], ...], Any], Any]
r"""
    Signature of custom error message formatters: ``(actual, path, context)``,
    returning a :obj:`str` or an awaitable resolving to one.
"""

PredicateFunction = Callable[[Any, Any], Any]
r"""
    Signature of refinement predicates: ``(value, context)``, returning a
    :obj:`bool` or an awaitable resolving to one.
"""


def is_type(t: Any) -> bool:
    """
    Whether ``t`` is a descriptor, i.e. a non-class object exposing a string
    ``kind`` attribute. Everything else is treated as a plain class.
    """
    return not isinstance(t, type) and isinstance(getattr(t, "kind", None), str)


def get_type_name(t: Any) -> str:
    """
    Display name for a descriptor or a plain class.
    """
    if is_type(t) and callable(getattr(t, "get_type_name", None)):
        return typing.cast(str, t.get_type_name())
    if isinstance(t, type):
        return t.__name__
    return repr(t)


def is_instance(value: Any, t: Any) -> bool:
    """
    Membership test for descriptors (via ``t.is_``) and plain classes
    (via :func:`isinstance`).
    """
    if is_type(t):
        return bool(t.is_(value))
    return isinstance(value, t)


async def is_instance_async(value: Any, t: Any, context: Any = None) -> bool:
    """
    Same as :func:`is_instance`, but asynchronous refinement predicates are
    awaited, and all predicates are called with the given ``context``.
    """
    if is_type(t):
        is_async = getattr(t, "is_async", None)
        if is_async is not None:
            return bool(await is_async(value, context))
        return bool(t.is_(value))
    return isinstance(value, t)


async def _all_instances_async(
    pairs: typing.Iterable[typing.Tuple[Any, Any]], context: Any
) -> bool:
    for value, t in pairs:
        if not await is_instance_async(value, t, context):
            return False
    return True


def _sync_predicate(predicate: PredicateFunction, value: Any) -> bool:
    res = predicate(value, None)
    if inspect.isawaitable(res):
        if inspect.iscoroutine(res):
            res.close()
        raise TypeError(
            "Asynchronous predicate cannot be evaluated synchronously, "
            "use validate() instead."
        )
    return bool(res)


class Type:
    """
    Base class for descriptors.

    Subclasses set the class attribute ``kind`` and implement :meth:`is_`.
    An optional ``error_message`` function passed to the constructor is
    exposed as ``get_validation_error_message`` and replaces the default
    error message for failed checks against this descriptor.

    Calling a descriptor on a value validates it synchronously and returns
    the normalized value, raising :obj:`TypeError` on failure.
    """

    kind: typing.ClassVar[str]

    _name: Optional[str]

    def __init__(
        self,
        name: Optional[str] = None,
        *,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        self._name = name
        if error_message is not None:
            if not callable(error_message):
                raise TypeError(
                    f"Expected callable error message, got {error_message!r}."
                )
            self.get_validation_error_message = error_message

    @property
    def name(self) -> Optional[str]:
        """The name given to the descriptor, if any."""
        return self._name

    def is_(self, value: Any) -> bool:
        """Fast membership test."""
        raise NotImplementedError()

    async def is_async(self, value: Any, context: Any = None) -> bool:
        """
        Membership test which awaits asynchronous refinement predicates,
        calling them with ``context``. Same as :meth:`is_` by default.
        """
        return self.is_(value)

    def get_type_name(self) -> str:
        """The display name: the given name if any, else a structural one."""
        if self._name is not None:
            return self._name
        return self._default_name()

    def _default_name(self) -> str:
        return type(self).__name__

    def __call__(self, value: Any) -> Any:
        # pylint: disable = import-outside-toplevel
        from .validation import validated

        return validated(value, self)

    def __copy__(self) -> Type:
        return self

    def __deepcopy__(self, memo: typing.Dict[int, Any]) -> Type:
        # struct instances are tied to their type by identity
        return self

    def __repr__(self) -> str:
        return self.get_type_name()


class Irreducible(Type):
    """
    Descriptor for values which are checked as a whole, by a predicate.
    """

    kind = "irreducible"

    _predicate: Callable[[Any], bool]

    def __init__(
        self,
        name: str,
        predicate: Callable[[Any], bool],
        *,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        if not callable(predicate):
            raise TypeError(f"Expected callable predicate, got {predicate!r}.")
        super().__init__(name, error_message=error_message)
        self._predicate = predicate

    def is_(self, value: Any) -> bool:
        return bool(self._predicate(value))


def irreducible(
    name: str,
    predicate: Callable[[Any], bool],
    *,
    error_message: Optional[ErrorMessageFunction] = None,
) -> Irreducible:
    """Creates an irreducible descriptor from a membership predicate."""
    return Irreducible(name, predicate, error_message=error_message)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


AnyValue = Irreducible("Any", lambda _: True)
Nil = Irreducible("Nil", lambda x: x is None)
String = Irreducible("String", lambda x: isinstance(x, str))
Number = Irreducible("Number", _is_number)
Integer = Irreducible(
    "Integer", lambda x: isinstance(x, int) and not isinstance(x, bool)
)
Boolean = Irreducible("Boolean", lambda x: isinstance(x, bool))
Function = Irreducible("Function", callable)
Object = Irreducible("Object", lambda x: isinstance(x, Mapping))
Array = Irreducible("Array", lambda x: isinstance(x, (list, tuple)))
Error = Irreducible("Error", lambda x: isinstance(x, BaseException))


class EnumsType(Type):
    """
    Descriptor for a fixed set of hashable values.
    If built from a mapping, the keys are the allowed values.
    """

    kind = "enums"

    _values: typing.Dict[Any, Any]

    def __init__(
        self,
        values: Union[Mapping[Any, Any], typing.Iterable[Any]],
        name: Optional[str] = None,
        *,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        super().__init__(name, error_message=error_message)
        if isinstance(values, Mapping):
            self._values = dict(values)
        else:
            self._values = {v: v for v in values}

    @property
    def values(self) -> typing.Tuple[Any, ...]:
        """The allowed values."""
        return tuple(self._values)

    def is_(self, value: Any) -> bool:
        return isinstance(value, Hashable) and value in self._values

    def _default_name(self) -> str:
        return " | ".join(repr(v) for v in self._values)


def enums(
    values: Union[Mapping[Any, Any], typing.Iterable[Any]],
    name: Optional[str] = None,
    *,
    error_message: Optional[ErrorMessageFunction] = None,
) -> EnumsType:
    """Creates an enums descriptor from a mapping or an iterable of values."""
    return EnumsType(values, name, error_message=error_message)


def enums_of(
    *values: Any,
    name: Optional[str] = None,
    error_message: Optional[ErrorMessageFunction] = None,
) -> EnumsType:
    """Creates an enums descriptor from the given values."""
    return EnumsType(values, name, error_message=error_message)


class ListType(Type):
    """
    Descriptor for lists (or tuples) with all items of the same type.
    """

    kind = "list"

    _type: Any

    def __init__(
        self,
        t: Any,
        name: Optional[str] = None,
        *,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        super().__init__(name, error_message=error_message)
        self._type = t

    @property
    def type(self) -> Any:
        """The item type."""
        return self._type

    def is_(self, value: Any) -> bool:
        return isinstance(value, (list, tuple)) and all(
            is_instance(item, self._type) for item in value
        )

    async def is_async(self, value: Any, context: Any = None) -> bool:
        return isinstance(value, (list, tuple)) and await _all_instances_async(
            ((item, self._type) for item in value), context
        )

    def _default_name(self) -> str:
        return f"Array<{get_type_name(self._type)}>"


def list_of(
    t: Any,
    name: Optional[str] = None,
    *,
    error_message: Optional[ErrorMessageFunction] = None,
) -> ListType:
    """Creates a list descriptor with the given item type."""
    return ListType(t, name, error_message=error_message)


class TupleType(Type):
    """
    Descriptor for fixed-length sequences, each position with its own type.
    """

    kind = "tuple"

    _types: typing.Tuple[Any, ...]

    def __init__(
        self,
        types: typing.Iterable[Any],
        name: Optional[str] = None,
        *,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        super().__init__(name, error_message=error_message)
        self._types = tuple(types)

    @property
    def types(self) -> typing.Tuple[Any, ...]:
        """The types of the positions."""
        return self._types

    def is_(self, value: Any) -> bool:
        return (
            isinstance(value, (list, tuple))
            and len(value) == len(self._types)
            and all(is_instance(v, t) for v, t in zip(value, self._types))
        )

    async def is_async(self, value: Any, context: Any = None) -> bool:
        return (
            isinstance(value, (list, tuple))
            and len(value) == len(self._types)
            and await _all_instances_async(zip(value, self._types), context)
        )

    def _default_name(self) -> str:
        return "[" + ", ".join(get_type_name(t) for t in self._types) + "]"


def tuple_of(
    types: typing.Iterable[Any],
    name: Optional[str] = None,
    *,
    error_message: Optional[ErrorMessageFunction] = None,
) -> TupleType:
    """Creates a tuple descriptor with the given position types."""
    return TupleType(types, name, error_message=error_message)


class DictType(Type):
    """
    Descriptor for mappings with keys in a domain and values in a codomain.
    """

    kind = "dict"

    _domain: Any
    _codomain: Any

    def __init__(
        self,
        domain: Any,
        codomain: Any,
        name: Optional[str] = None,
        *,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        super().__init__(name, error_message=error_message)
        self._domain = domain
        self._codomain = codomain

    @property
    def domain(self) -> Any:
        """The key type."""
        return self._domain

    @property
    def codomain(self) -> Any:
        """The value type."""
        return self._codomain

    def is_(self, value: Any) -> bool:
        return isinstance(value, Mapping) and all(
            is_instance(k, self._domain) and is_instance(v, self._codomain)
            for k, v in value.items()
        )

    async def is_async(self, value: Any, context: Any = None) -> bool:
        if not isinstance(value, Mapping):
            return False
        for k, v in value.items():
            if not await _all_instances_async(
                ((k, self._domain), (v, self._codomain)), context
            ):
                return False
        return True

    def _default_name(self) -> str:
        return (
            f"{{[key: {get_type_name(self._domain)}]: "
            f"{get_type_name(self._codomain)}}}"
        )


def dict_of(
    domain: Any,
    codomain: Any,
    name: Optional[str] = None,
    *,
    error_message: Optional[ErrorMessageFunction] = None,
) -> DictType:
    """Creates a dict descriptor with the given key and value types."""
    return DictType(domain, codomain, name, error_message=error_message)


def _props_name(props: Mapping[str, Any]) -> str:
    fields = ", ".join(f"{k}: {get_type_name(t)}" for k, t in props.items())
    return "{" + fields + "}"


class Struct(Mapping[str, Any]):
    """
    Immutable instance of a :class:`StructType`: a read-only mapping
    from field names to values, whose fields can also be read as attributes.
    """

    __slots__ = ("_type", "_values")

    _type: StructType
    _values: typing.Dict[str, Any]

    def __init__(self, t: StructType, values: Mapping[str, Any]) -> None:
        object.__setattr__(self, "_type", t)
        object.__setattr__(self, "_values", dict(values))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Any:
        if name in Struct.__slots__:
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(
                f"{self._type.get_type_name()!r} object has no field {name!r}"
            ) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(
            f"{self._type.get_type_name()!r} object is immutable."
        )

    def __delattr__(self, name: str) -> None:
        raise AttributeError(
            f"{self._type.get_type_name()!r} object is immutable."
        )

    def __repr__(self) -> str:
        return f"{self._type.get_type_name()}({self._values!r})"

    def __reduce__(self) -> typing.Tuple[Any, ...]:
        return (Struct, (self._type, self._values))


class StructType(Type):
    """
    Descriptor for records with declared fields, optional field defaults
    and an optional strict mode rejecting undeclared fields.

    Successful validation against a struct type produces a :class:`Struct`
    instance of that type.
    """

    kind = "struct"

    _props: typing.Dict[str, Any]
    _default_props: typing.Dict[str, Any]
    _strict: bool

    def __init__(
        self,
        props: Mapping[str, Any],
        name: Optional[str] = None,
        *,
        default_props: Optional[Mapping[str, Any]] = None,
        strict: bool = False,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        super().__init__(name, error_message=error_message)
        self._props = dict(props)
        self._default_props = dict(default_props) if default_props is not None else {}
        unknown = [k for k in self._default_props if k not in self._props]
        if unknown:
            raise ValueError(f"Defaults given for undeclared props: {unknown!r}")
        self._strict = bool(strict)

    @property
    def props(self) -> Mapping[str, Any]:
        """The declared fields and their types, in declaration order."""
        return MappingProxyType(self._props)

    @property
    def default_props(self) -> Mapping[str, Any]:
        """The default values for fields, used when a field is missing."""
        return MappingProxyType(self._default_props)

    @property
    def strict(self) -> bool:
        """Whether undeclared fields are rejected."""
        return self._strict

    def is_(self, value: Any) -> bool:
        return isinstance(value, Struct) and value._type is self

    def create(self, values: Mapping[str, Any]) -> Struct:
        """
        Wraps already validated field values into an instance, without checks.
        """
        return Struct(self, values)

    def _default_name(self) -> str:
        return _props_name(self._props)

    def __call__(self, value: Any = None, /, **fields: Any) -> Any:
        if value is None:
            value = fields
        if self.is_(value):
            return value
        return super().__call__(value)


def struct(
    props: Mapping[str, Any],
    name: Optional[str] = None,
    *,
    default_props: Optional[Mapping[str, Any]] = None,
    strict: bool = False,
    error_message: Optional[ErrorMessageFunction] = None,
) -> StructType:
    """Creates a struct descriptor."""
    return StructType(
        props,
        name,
        default_props=default_props,
        strict=strict,
        error_message=error_message,
    )


class InterfaceType(Type):
    """
    Descriptor for mappings having (at least) the declared fields.
    Validated values stay plain dictionaries.
    """

    kind = "interface"

    _props: typing.Dict[str, Any]
    _strict: bool

    def __init__(
        self,
        props: Mapping[str, Any],
        name: Optional[str] = None,
        *,
        strict: bool = False,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        super().__init__(name, error_message=error_message)
        self._props = dict(props)
        self._strict = bool(strict)

    @property
    def props(self) -> Mapping[str, Any]:
        """The declared fields and their types, in declaration order."""
        return MappingProxyType(self._props)

    @property
    def strict(self) -> bool:
        """Whether undeclared non-nil fields are rejected."""
        return self._strict

    def is_(self, value: Any) -> bool:
        if not isinstance(value, Mapping):
            return False
        if not all(is_instance(value.get(k), t) for k, t in self._props.items()):
            return False
        if self._strict:
            return all(
                k in self._props or v is None for k, v in value.items()
            )
        return True

    async def is_async(self, value: Any, context: Any = None) -> bool:
        if not isinstance(value, Mapping):
            return False
        if not await _all_instances_async(
            ((value.get(k), t) for k, t in self._props.items()), context
        ):
            return False
        if self._strict:
            return all(
                k in self._props or v is None for k, v in value.items()
            )
        return True

    def _default_name(self) -> str:
        return _props_name(self._props)


def interface(
    props: Mapping[str, Any],
    name: Optional[str] = None,
    *,
    strict: bool = False,
    error_message: Optional[ErrorMessageFunction] = None,
) -> InterfaceType:
    """Creates an interface descriptor."""
    return InterfaceType(props, name, strict=strict, error_message=error_message)


class UnionType(Type):
    """
    Descriptor for values belonging to one of several member types.
    The member used for validation is selected by :meth:`dispatch`.
    """

    kind = "union"

    _types: typing.Tuple[Any, ...]
    _dispatch: Optional[Callable[[Any], Any]]

    def __init__(
        self,
        types: typing.Iterable[Any],
        name: Optional[str] = None,
        *,
        dispatch: Optional[Callable[[Any], Any]] = None,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        super().__init__(name, error_message=error_message)
        self._types = tuple(types)
        if len(self._types) < 2:
            raise ValueError("A union needs at least two member types.")
        if dispatch is not None and not callable(dispatch):
            raise TypeError(f"Expected callable dispatch, got {dispatch!r}.")
        self._dispatch = dispatch

    @property
    def types(self) -> typing.Tuple[Any, ...]:
        """The member types."""
        return self._types

    def dispatch(self, value: Any) -> Any:
        """
        The member type the value should be validated against, or
        :obj:`None` if no member applies. By default, the first member
        the value belongs to.
        """
        if self._dispatch is not None:
            return self._dispatch(value)
        for t in self._types:
            if is_instance(value, t):
                return t
        return None

    async def dispatch_async(self, value: Any, context: Any = None) -> Any:
        """
        Same as :meth:`dispatch`, but custom dispatch functions may return
        an awaitable, and the default dispatch awaits asynchronous refinement
        predicates, calling them with ``context``.
        """
        if self._dispatch is not None:
            member = self._dispatch(value)
            if inspect.isawaitable(member):
                member = await member
            return member
        for t in self._types:
            if await is_instance_async(value, t, context):
                return t
        return None

    def is_(self, value: Any) -> bool:
        return any(is_instance(value, t) for t in self._types)

    async def is_async(self, value: Any, context: Any = None) -> bool:
        for t in self._types:
            if await is_instance_async(value, t, context):
                return True
        return False

    def _default_name(self) -> str:
        return " | ".join(get_type_name(t) for t in self._types)


def union(
    types: typing.Iterable[Any],
    name: Optional[str] = None,
    *,
    dispatch: Optional[Callable[[Any], Any]] = None,
    error_message: Optional[ErrorMessageFunction] = None,
) -> UnionType:
    """Creates a union descriptor, with optional custom dispatch."""
    return UnionType(types, name, dispatch=dispatch, error_message=error_message)


class IntersectionType(Type):
    """
    Descriptor for values belonging to all of several member types.
    """

    kind = "intersection"

    _types: typing.Tuple[Any, ...]

    def __init__(
        self,
        types: typing.Iterable[Any],
        name: Optional[str] = None,
        *,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        super().__init__(name, error_message=error_message)
        self._types = tuple(types)
        if len(self._types) < 2:
            raise ValueError("An intersection needs at least two member types.")

    @property
    def types(self) -> typing.Tuple[Any, ...]:
        """The member types."""
        return self._types

    def is_(self, value: Any) -> bool:
        return all(is_instance(value, t) for t in self._types)

    async def is_async(self, value: Any, context: Any = None) -> bool:
        return await _all_instances_async(((value, t) for t in self._types), context)

    def _default_name(self) -> str:
        return " & ".join(get_type_name(t) for t in self._types)


def intersection(
    types: typing.Iterable[Any],
    name: Optional[str] = None,
    *,
    error_message: Optional[ErrorMessageFunction] = None,
) -> IntersectionType:
    """Creates an intersection descriptor."""
    return IntersectionType(types, name, error_message=error_message)


class RefinementType(Type):
    """
    Descriptor for values of an inner type which further satisfy a predicate.

    The predicate is called as ``predicate(value, context)`` and may return
    an awaitable, in which case only :func:`~shape_validation.validation.validate`
    can evaluate it.
    """

    kind = "subtype"

    _type: Any
    _predicate: PredicateFunction

    def __init__(
        self,
        t: Any,
        predicate: PredicateFunction,
        name: Optional[str] = None,
        *,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        if not callable(predicate):
            raise TypeError(f"Expected callable predicate, got {predicate!r}.")
        super().__init__(name, error_message=error_message)
        self._type = t
        self._predicate = predicate

    @property
    def type(self) -> Any:
        """The inner type."""
        return self._type

    @property
    def predicate(self) -> PredicateFunction:
        """The refinement predicate."""
        return self._predicate

    def is_(self, value: Any) -> bool:
        return is_instance(value, self._type) and _sync_predicate(
            self._predicate, value
        )

    async def is_async(self, value: Any, context: Any = None) -> bool:
        if not await is_instance_async(value, self._type, context):
            return False
        satisfied = self._predicate(value, context)
        if inspect.isawaitable(satisfied):
            satisfied = await satisfied
        return bool(satisfied)

    def _default_name(self) -> str:
        pred_name = getattr(self._predicate, "__name__", repr(self._predicate))
        return f"{{{get_type_name(self._type)} | {pred_name}}}"


def refinement(
    t: Any,
    predicate: PredicateFunction,
    name: Optional[str] = None,
    *,
    error_message: Optional[ErrorMessageFunction] = None,
) -> RefinementType:
    """Creates a refinement of ``t`` by ``predicate``."""
    return RefinementType(t, predicate, name, error_message=error_message)


subtype = refinement


class MaybeType(Type):
    """
    Descriptor for values which are either :obj:`None` or of an inner type.
    """

    kind = "maybe"

    _type: Any

    def __init__(
        self,
        t: Any,
        name: Optional[str] = None,
        *,
        error_message: Optional[ErrorMessageFunction] = None,
    ) -> None:
        super().__init__(name, error_message=error_message)
        self._type = t

    @property
    def type(self) -> Any:
        """The inner type."""
        return self._type

    def is_(self, value: Any) -> bool:
        return value is None or is_instance(value, self._type)

    async def is_async(self, value: Any, context: Any = None) -> bool:
        return value is None or await is_instance_async(value, self._type, context)

    def _default_name(self) -> str:
        return f"?{get_type_name(self._type)}"


def maybe(
    t: Any,
    name: Optional[str] = None,
    *,
    error_message: Optional[ErrorMessageFunction] = None,
) -> MaybeType:
    """Creates a descriptor for :obj:`None` or values of type ``t``."""
    if isinstance(t, MaybeType) and name is None and error_message is None:
        return t
    return MaybeType(t, name, error_message=error_message)
