# pylint: disable = missing-docstring

import asyncio
import copy
import typing
import pytest

from shape_validation import (
    get_validation_result,
    irreducible,
    is_valid,
    validate_sync,
    validated,
    list_of,
    struct,
    ValidationError,
    ValidationResult,
    Number,
    String,
)

Numbers = list_of(Number)


def test_result_queries() -> None:
    res = validate_sync([1, "a", "b"], Numbers)
    assert not res.is_valid()
    assert not res
    first = res.first_error()
    assert first is not None and first.path == (1,)
    assert res.messages == [
        "Invalid value 'a' supplied to /1: Number",
        "Invalid value 'b' supplied to /2: Number",
    ]
    assert res.errors_at([2]) == [res.errors[1]]
    assert res.errors_at(()) == []
    ok = validate_sync([1], Numbers)
    assert ok.is_valid()
    assert ok
    assert ok.first_error() is None
    assert ok.messages == []


def test_result_str() -> None:
    assert str(validate_sync([1], Numbers)) == "[ValidationResult, true, [1]]"
    assert str(validate_sync("a", String)) == "[ValidationResult, true, 'a']"
    res = validate_sync([1, "a"], Numbers)
    assert str(res) == (
        "[ValidationResult, false, (\"Invalid value 'a' supplied to /1: Number\")]"
    )
    res = validate_sync([None, None], Numbers)
    assert str(res) == (
        "[ValidationResult, false, ("
        "\"Invalid value None supplied to /0: Number\", "
        "\"Invalid value None supplied to /1: Number\")]"
    )
    assert repr(res).startswith("ValidationResult([ValidationError(")


def test_result_visit() -> None:
    Person = struct({"name": String, "tags": list_of(String)}, "Person")
    res = validate_sync({"name": 1, "tags": ["a", 2, 3]}, Person)

    def group(error: ValidationError, acc: typing.Dict[typing.Any, int]) -> typing.Dict[typing.Any, int]:
        acc[error.path[0]] = acc.get(error.path[0], 0) + 1
        return acc

    assert res.visit(group, {}) == {"name": 1, "tags": 2}
    assert validate_sync({"name": "A", "tags": []}, Person).visit(group, {}) == {}


def test_rich_print(capsys: pytest.CaptureFixture[str]) -> None:
    pytest.importorskip("rich")
    validate_sync([1, "a"], Numbers).rich_print()
    out = capsys.readouterr().out
    assert "/1" in out
    assert "Number" in out
    validate_sync([1], Numbers).rich_print()
    assert "Valid" in capsys.readouterr().out


def test_validation_error_record() -> None:
    error = asyncio.run(ValidationError.of(1, String, ["a", 0]))
    assert error.path == ("a", 0)
    assert error.actual == 1
    assert error.expected is String
    assert error.message == "Invalid value 1 supplied to /a/0: String"
    assert str(error) == error.message
    assert repr(error) == (
        "ValidationError('Invalid value 1 supplied to /a/0: String', 1, String, ('a', 0))"
    )
    with pytest.raises(AttributeError):
        error.message = "other"  # type: ignore[misc]
    res = ValidationResult([error], 1)
    assert res.errors == (error,)


def test_validated() -> None:
    assert validated([1, 2], Numbers) == [1, 2]
    try:
        validated([1, "a"], Numbers)
        assert False, "validated([1, 'a'], Numbers) should have raised TypeError."
    except TypeError as err:
        res = get_validation_result(err)
        assert res.messages == ["Invalid value 'a' supplied to /1: Number"]
        assert "Invalid value 'a' supplied to /1: Number" in str(err)


def test_get_validation_result_errors() -> None:
    with pytest.raises(TypeError):
        get_validation_result(ValueError("not a type error"))  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        get_validation_result(TypeError("not a validation error"))


def test_is_valid() -> None:
    assert is_valid([1], Numbers)
    assert not is_valid([1, None], Numbers)
    assert is_valid(["x"], Numbers, {"path": ["root"]}) is False


def test_descriptor_call() -> None:
    assert Number(1) == 1
    with pytest.raises(TypeError):
        Number("x")
    assert Numbers((1, 2)) == [1, 2]


def test_result_str_quoting() -> None:
    Quoted = irreducible("Quoted", lambda _: False, error_message=lambda a, p, c: f'say "{a}"')
    res = validate_sync("hi", Quoted)
    assert str(res) == '[ValidationResult, false, ("say \\"hi\\"")]'


def test_struct_instance_copy() -> None:
    Point = struct({"x": Number, "tags": list_of(String)}, "Point")
    p = Point({"x": 1, "tags": ["a"]})
    shallow = copy.copy(p)
    assert Point.is_(shallow)
    assert shallow == p
    deep = copy.deepcopy(p)
    assert Point.is_(deep)
    assert deep == p
    assert deep.tags is not p.tags
    assert validate_sync(deep, Point).value is deep
