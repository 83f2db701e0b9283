# pylint: disable = missing-docstring

from typing import Any

import pytest

from shape_validation import (
    Integer, String, get_validation_result, list_of, maybe, refinement, struct,
    validation_options,
)
from shape_validation.descriptor import Field


@pytest.mark.parametrize("x", [0, 10])
def test_single_field_valid(x: Any) -> None:
    class C:
        x = Field(Integer, lambda _, x: x >= 0)
        def __init__(self, x: int) -> None:
            self.x = x
    assert C(x).x == x

@pytest.mark.parametrize("x", ["hello", 1.0, None])
def test_single_field_type_error(x: Any) -> None:
    class C:
        x = Field(Integer, lambda _, x: x >= 0)
        def __init__(self, x: int) -> None:
            self.x = x
    with pytest.raises(TypeError):
        C(x)
    c = C(0)
    with pytest.raises(TypeError):
        c.x = x
    assert c.x == 0

@pytest.mark.parametrize("x", [-1])
def test_single_field_value_error(x: Any) -> None:
    class C:
        x = Field(Integer, lambda _, x: x >= 0, "Must be non-negative.")
        def __init__(self, x: int) -> None:
            self.x = x
    with pytest.raises(ValueError, match="Must be non-negative."):
        C(x)
    with pytest.raises(ValueError):
        C(0).x = x

@pytest.mark.parametrize("x", [1])
def test_single_field_readonly(x: Any) -> None:
    class C:
        x = Field(Integer, lambda _, x: x >= 0, readonly=True)
        def __init__(self, x: int) -> None:
            self.x = x
    c = C(x)
    with pytest.raises(AttributeError):
        c.x = x
    with pytest.raises(AttributeError):
        del c.x
    assert c.x == x

@pytest.mark.parametrize("x, y", [(0, 2), (1, 1)])
def test_two_fields_valid(x: Any, y: Any) -> None:
    class C:
        x = Field(Integer, lambda _, x: x >= 0)
        y = Field(Integer, lambda self, y: y >= self.x)
        def __init__(self, x: int, y: int) -> None:
            self.x = x
            self.y = y
    C(x, y)

@pytest.mark.parametrize("x, y", [(0, -1), (-1, 2), (3, 2)])
def test_two_fields_value_error(x: Any, y: Any) -> None:
    class C:
        x = Field(Integer, lambda _, x: x >= 0)
        y = Field(Integer, lambda self, y: y >= self.x)
        def __init__(self, x: int, y: int) -> None:
            self.x = x
            self.y = y
    with pytest.raises(ValueError):
        C(x, y)
    if x >= 0:
        with pytest.raises(ValueError):
            C(x, x+1).y = y

def test_field_stores_normalized_value() -> None:
    Address = struct({"city": String, "country": String}, "Address",
                     default_props={"country": "UK"})
    class C:
        address = Field(Address)
        tags = Field(list_of(String))
    c = C()
    c.address = {"city": "Leeds"}
    assert Address.is_(c.address)
    assert c.address.country == "UK"
    c.tags = ("a", "b")
    assert c.tags == ["a", "b"]

def test_field_missing_and_delete() -> None:
    class C:
        x = Field(maybe(Integer))
    c = C()
    with pytest.raises(AttributeError):
        c.x  # pylint: disable = pointless-statement
    c.x = None
    assert c.x is None
    del c.x
    with pytest.raises(AttributeError):
        del c.x

def test_field_slots() -> None:
    class C:
        __slots__ = ("_x", "__y")
        x = Field(Integer)
        y = Field(String, attr_name="__y")
        def __init__(self, x: int, y: str) -> None:
            self.x = x
            self.y = y
    c = C(1, "a")
    assert (c.x, c.y) == (1, "a")
    with pytest.raises((AttributeError, RuntimeError)):
        class D:
            __slots__ = ("_y",)
            x = Field(Integer)

def test_field_construction_errors() -> None:
    with pytest.raises(TypeError):
        Field(3)
    with pytest.raises(TypeError):
        Field(Integer, validator=3)  # type: ignore[arg-type]

def test_field_error_paths() -> None:
    Point = struct({"x": Integer, "y": Integer}, "Point")
    class C:
        where = Field(Point)
    c = C()
    with pytest.raises(TypeError) as info:
        c.where = {"x": 1, "y": "a"}
    res = get_validation_result(info.value)
    assert res.messages == ["Invalid value 'a' supplied to /where/y: Integer"]
    assert not C.where.is_defined_on(c)

def test_field_options() -> None:
    Point = struct({"x": Integer}, "Point")
    class C:
        loose = Field(Point)
        tight = Field(Point, strict=True)
        bounded = Field(refinement(Integer, lambda x, ctx: x <= ctx), context=10)
    c = C()
    c.loose = {"x": 1, "z": 2}
    with pytest.raises(TypeError):
        c.tight = {"x": 1, "z": 2}
    c.bounded = 10
    with pytest.raises(TypeError):
        c.bounded = 11
    assert C.tight.options().path == ("tight",)
    assert C.tight.options().strict is True
    assert repr(C.loose) == "Field(loose: Point)"

def test_field_uses_options_block() -> None:
    Point = struct({"x": Integer}, "Point")
    AtMost = refinement(Integer, lambda x, ctx: x <= ctx, "AtMost")
    class C:
        loose = Field(Point)
        relaxed = Field(Point, strict=False)
        bounded = Field(AtMost)
        fixed = Field(AtMost, context=5)
    c = C()
    with validation_options(strict=True, context=3):
        with pytest.raises(TypeError):
            c.loose = {"x": 1, "z": 2}
        c.relaxed = {"x": 1, "z": 2}
        c.bounded = 3
        with pytest.raises(TypeError):
            c.bounded = 4
        c.fixed = 5
        assert C.loose.options().path == ("loose",)
    c.loose = {"x": 1, "z": 2}
