"""
    Validation errors and validation results.
"""

from __future__ import annotations

from collections.abc import Sequence
import inspect
import json
import sys
import typing
from typing import Any, Optional, Protocol, Union

if sys.version_info[1] >= 11:
    from typing import Self
else:
    from typing_extensions import Self

from .combinators import get_type_name

PathSegment = Union[str, int]
"""
    A single segment of a validation path: a field name, a dict key or an index.
"""

Path = typing.Tuple[PathSegment, ...]
"""
    Location of a value inside the root value being validated.
"""


def _path_str(path: Sequence[PathSegment]) -> str:
    return "/" + "/".join(str(seg) for seg in path)


def default_error_message(actual: Any, expected: Any, path: Sequence[PathSegment]) -> str:
    """
    Default message for a failed check of ``actual`` against ``expected``:

    >>> default_error_message(1, String, ("name",))
    'Invalid value 1 supplied to /name: String'
    >>> default_error_message(1, String, ())
    'Invalid value 1 supplied to String'
    """
    expected_name = get_type_name(expected)
    to = f"{_path_str(path)}: {expected_name}" if path else expected_name
    return f"Invalid value {actual!r} supplied to {to}"


async def _error_message(
    actual: Any, expected: Any, path: Path, context: Any
) -> str:
    formatter = getattr(expected, "get_validation_error_message", None)
    if not callable(formatter):
        return default_error_message(actual, expected, path)
    message = formatter(actual, path, context)
    if inspect.isawaitable(message):
        message = await message
    return typing.cast(str, message)


class ValidationError:
    """
    Record of a single failed check: the offending value, the descriptor
    it was checked against, the path where the check happened and a
    human-readable message.

    Instances are created by :meth:`ValidationError.of` and are never
    modified afterwards.
    """

    _message: str
    _actual: Any
    _expected: Any
    _path: Path

    def __new__(
        cls, message: str, actual: Any, expected: Any, path: Sequence[PathSegment]
    ) -> Self:
        instance = super().__new__(cls)
        instance._message = message
        instance._actual = actual
        instance._expected = expected
        instance._path = tuple(path)
        return instance

    @classmethod
    async def of(
        cls,
        actual: Any,
        expected: Any,
        path: Sequence[PathSegment],
        context: Any = None,
    ) -> ValidationError:
        """
        Builds the error for a failed check of ``actual`` against ``expected``
        at ``path``.

        The message is obtained from ``expected.get_validation_error_message``
        if the descriptor defines one (awaiting it if it returns an
        awaitable), and from :func:`default_error_message` otherwise.
        """
        path = tuple(path)
        message = await _error_message(actual, expected, path, context)
        return cls(message, actual, expected, path)

    @property
    def message(self) -> str:
        """The human-readable error message."""
        return self._message

    @property
    def actual(self) -> Any:
        """The value which failed the check."""
        return self._actual

    @property
    def expected(self) -> Any:
        """The descriptor the value was checked against."""
        return self._expected

    @property
    def path(self) -> Path:
        """The path at which the check failed."""
        return self._path

    def __str__(self) -> str:
        return self._message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, {self.actual!r}, "
            f"{get_type_name(self.expected)}, {self.path!r})"
        )


Acc = typing.TypeVar("Acc")
"""
    Type variable for the accumulator in :meth:`ValidationResult.visit`.
"""


class ErrorVisitor(Protocol[Acc]):
    """
    Structural type for visitor functions that can be passed to
    :meth:`ValidationResult.visit`.
    """

    def __call__(self, error: ValidationError, acc: Acc) -> Acc:
        """
        See :meth:`ValidationResult.visit` for usage.
        """


class ValidationResult:
    """
    Outcome of a validation: the errors found (in traversal order) and the
    resulting value.

    On success, the value is the normalized value (defaults applied, nested
    values rebuilt, structs wrapped in their type). On failure, it is
    whatever could be assembled: usually the original input.
    """

    _errors: typing.Tuple[ValidationError, ...]
    _value: Any

    def __new__(cls, errors: typing.Iterable[ValidationError], value: Any) -> Self:
        instance = super().__new__(cls)
        instance._errors = tuple(errors)
        instance._value = value
        return instance

    @property
    def errors(self) -> typing.Tuple[ValidationError, ...]:
        r"""
        The errors found, in traversal order.

        :rtype: :obj:`~typing.Tuple`\ [:class:`ValidationError`, ...]
        """
        return self._errors

    @property
    def value(self) -> Any:
        """The resulting value."""
        return self._value

    @property
    def messages(self) -> typing.List[str]:
        """The messages of all errors, in traversal order."""
        return [error.message for error in self._errors]

    def is_valid(self) -> bool:
        """Whether no errors were found."""
        return not self._errors

    def first_error(self) -> Optional[ValidationError]:
        """The first error in traversal order, or :obj:`None` if valid."""
        return None if self.is_valid() else self._errors[0]

    def errors_at(self, path: Sequence[PathSegment]) -> typing.List[ValidationError]:
        """The errors found exactly at the given path."""
        path = tuple(path)
        return [error for error in self._errors if error.path == path]

    def visit(self, fun: ErrorVisitor[Acc], acc: Acc) -> Acc:
        r"""
        Folds ``fun`` over the errors in traversal order, threading the
        accumulator through, and returns the final accumulator.

        For example, grouping error messages by top-level field:

        >>> def group(error, acc):
        ...     key = error.path[0] if error.path else None
        ...     acc.setdefault(key, []).append(error.message)
        ...     return acc
        ...
        >>> result.visit(group, {})
        {'name': ['Invalid value 1 supplied to /name: String']}

        :param fun: the function applied to each error and the current accumulator
        :type fun: :obj:`~typing.Callable`\ [[:class:`ValidationError`, ``Acc``], ``Acc``]
        :param acc: the initial value for the accumulator
        :type acc: any type ``Acc``
        """
        for error in self._errors:
            acc = fun(error, acc)
        return acc

    def rich_print(self) -> None:
        r"""
        Pretty-prints the result using `rich <https://github.com/willmcgugan/rich>`_,
        as a table with one row per error.

        Raises :obj:`ModuleNotFoundError` if `rich <https://github.com/willmcgugan/rich>`_ is not installed.
        """
        # pylint: disable = import-outside-toplevel
        import rich
        from rich.table import Table
        from rich.text import Text

        if self.is_valid():
            rich.print(Text(f"Valid: {self.value!r}"))
            return
        table = Table(title=f"{len(self._errors)} validation error(s)")
        table.add_column("Path")
        table.add_column("Expected")
        table.add_column("Actual")
        table.add_column("Message")
        for error in self._errors:
            table.add_row(
                Text(_path_str(error.path)),
                Text(get_type_name(error.expected)),
                Text(repr(error.actual)),
                Text(error.message),
            )
        rich.print(table)

    def __bool__(self) -> bool:
        return self.is_valid()

    def __str__(self) -> str:
        """
        The canonical form ``[ValidationResult, true, <repr(value)>]`` if
        valid, else ``[ValidationResult, false, (<messages>)]`` with each
        message JSON-quoted.
        """
        if self.is_valid():
            return f"[ValidationResult, true, {self.value!r}]"
        messages = ", ".join(
            json.dumps(error.message, ensure_ascii=False) for error in self._errors
        )
        return f"[ValidationResult, false, ({messages})]"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._errors)!r}, {self._value!r})"


def get_validation_result(err: TypeError) -> ValidationResult:
    """
    Programmatic access to the validation result attached to an error
    raised by :func:`~shape_validation.validation.validated`.

    >>> from shape_validation import validated, get_validation_result, list_of, Number
    >>> try:
    ...     validated([0, "a"], list_of(Number))
    ... except TypeError as err:
    ...     result = get_validation_result(err)
    ...
    >>> result.messages
    ["Invalid value 'a' supplied to /1: Number"]

    :param err: type error raised by :func:`~shape_validation.validation.validated`
    :type err: :obj:`TypeError`

    Raises :obj:`TypeError` if the given error ``err`` is not a :obj:`TypeError`.
    Raises :obj:`ValueError` if no validation result is attached to it.
    """
    if not isinstance(err, TypeError):
        raise TypeError(f"Expected TypeError, found {type(err)}")
    if not hasattr(err, "validation_result"):
        raise ValueError("TypeError given is not a validation error.")
    validation_result = getattr(err, "validation_result")
    if not isinstance(validation_result, ValidationResult):
        raise ValueError("TypeError given is not a validation error.")
    return validation_result
