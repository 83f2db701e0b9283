"""
    Validated attributes: a Python descriptor which checks assigned values
    against a type descriptor and stores the normalized value.
"""

# Copyright (C) 2023 Hashberg Ltd

# This library is free software; you can redistribute it and/or
# modify it under the terms of the GNU Lesser General Public
# License as published by the Free Software Foundation; either
# version 2.1 of the License, or (at your option) any later version.

# This library is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.

# You should have received a copy of the GNU Lesser General Public
# License along with this library; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301
# USA

from __future__ import annotations
from typing import Any, Generic, Optional, Protocol, Type, TypeVar, cast, final

from .combinators import get_type_name
from .options import ValidationOptions, current_options
from .validation import can_validate, validated

T = TypeVar("T")
""" Invariant type variable for field values. """

T_contra = TypeVar("T_contra", contravariant=True)
""" Contravariant type variable for field values. """


class ValidatorFunction(Protocol[T_contra]):
    """
        Structural type for the extra check of a field, called as
        ``validator(instance, value)`` with the normalized ``value``
        after it has passed validation against the field's type.
        The ``instance`` can be used for checks across fields.
    """

    def __call__(self, instance: Any, value: T_contra) -> bool:
        ...


def _no_attribute(owner: Type[Any], name: str) -> AttributeError:
    return AttributeError(f"{owner.__name__!r} object has no attribute {name!r}")


class Field(Generic[T]):
    """
        An attribute whose assigned values are validated against a type
        descriptor (or class):

        >>> class Order:
        ...     quantity = Field(Integer, lambda _, q: q > 0, "Quantity must be positive.")
        ...     address = Field(Address)
        ...
        >>> order = Order()
        >>> order.address = {"city": "Leeds"}
        >>> order.address
        Address({'city': 'Leeds', 'country': 'UK'})
        >>> order.quantity = "x"
        TypeError: Runtime validation error raised by validated(val, t), details below.
        Invalid value 'x' supplied to /quantity: Integer

        Errors are reported at paths rooted at the field name, and the
        value stored is the normalized one (defaults applied, structs
        wrapped, sequences rebuilt as lists).

        The value lives in a backing attribute, ``_<name>`` unless ``attr_name``
        is given. Backing attributes starting (but not ending) with two
        underscores are name-mangled, and must be listed in ``__slots__``
        when the owner class declares slots.
    """
    #pylint: disable = too-many-instance-attributes

    __name: str
    __attr_name: str
    __backing_name: Optional[str]
    __owner: Type[Any]
    __type: Any
    __validator: Optional[ValidatorFunction[T]]
    __error_msg: Optional[str]
    __readonly: bool
    __strict: Optional[bool]
    __context: Any

    __slots__ = ("__name", "__attr_name", "__backing_name", "__owner", "__type",
                 "__validator", "__error_msg", "__readonly", "__strict", "__context")

    def __init__(self, ty: Any,
                 validator: Optional[ValidatorFunction[T]] = None,
                 error_msg: Optional[str] = None, *,
                 readonly: bool = False,
                 attr_name: Optional[str] = None,
                 strict: Optional[bool] = None,
                 context: Any = None) -> None:
        """
            :param ty: the type descriptor (or class) of the field
            :param validator: optional extra check, see :class:`ValidatorFunction`
            :param error_msg: optional text appended to the error raised
                              when ``validator`` fails
            :param readonly: if :obj:`True`, the field can be set once and never deleted
            :param attr_name: name of the backing attribute
            :param strict: ``strict`` option used when validating assigned values
            :param context: ``context`` option used when validating assigned values

            :raises TypeError: if ``ty`` cannot be validated against,
                               or ``validator`` is not callable

            :meta public:
        """
        if not can_validate(ty):
            raise TypeError(f"Cannot validate against {ty!r}.")
        if validator is not None and not callable(validator):
            raise TypeError(f"Expected callable validator, got {validator!r}.")
        self.__type = ty
        self.__validator = validator
        self.__error_msg = error_msg
        self.__readonly = bool(readonly)
        self.__backing_name = attr_name
        self.__strict = strict
        self.__context = context

    @final
    @property
    def name(self) -> str:
        """ The name of the field on its owner class. """
        return self.__name

    @final
    @property
    def type(self) -> Any:
        """ The descriptor assigned values are validated against. """
        return self.__type

    @final
    @property
    def owner(self) -> Type[Any]:
        """ The class the field is defined on. """
        return self.__owner

    @final
    @property
    def readonly(self) -> bool:
        """ Whether the field can only be set once. """
        return self.__readonly

    @final
    @property
    def validator(self) -> Optional[ValidatorFunction[T]]:
        """ The extra check for the field, if any. """
        return self.__validator

    @final
    def options(self) -> ValidationOptions:
        """
            The options used to validate values assigned to the field:
            the defaults currently in effect, with errors rooted at the field
            name and with the field's own ``strict`` and ``context`` if set.
        """
        options = current_options()._replace(path=(self.__name,))
        if self.__strict is not None:
            options = options._replace(strict=self.__strict)
        if self.__context is not None:
            options = options._replace(context=self.__context)
        return options

    @final
    def is_defined_on(self, instance: Any) -> bool:
        """ Whether the field has a value on the given instance. """
        return hasattr(instance, self.__attr_name)

    @final
    def __set_name__(self, owner: Type[Any], name: str) -> None:
        backing_name = self.__backing_name
        if backing_name is None:
            backing_name = self.__backing_name = f"_{name}"
        elif backing_name == name:
            raise ValueError(
                f"Backing attribute of field {name!r} cannot be the field itself."
            )
        slots = getattr(owner, "__slots__", None)
        if slots is not None and backing_name not in slots:
            raise AttributeError(
                f"Backing attribute {backing_name!r} of field {name!r} "
                "must be listed in __slots__."
            )
        mangled = backing_name.startswith("__") and not backing_name.endswith("__")
        self.__attr_name = f"_{owner.__name__}{backing_name}" if mangled else backing_name
        self.__owner = owner
        self.__name = name

    @final
    def __get__(self, instance: Any, _: Type[Any]) -> Any:
        """
            The field's value on the instance, or the field itself when
            accessed on the owner class.

            :raises AttributeError: if the field has no value on the instance

            :meta public:
        """
        if instance is None:
            return self
        if not self.is_defined_on(instance):
            raise _no_attribute(self.__owner, self.__name)
        return cast(T, getattr(instance, self.__attr_name))

    @final
    def __set__(self, instance: Any, value: Any) -> None:
        """
            Validates ``value`` and stores its normalized form.

            :raises AttributeError: if the field is readonly and already set
            :raises TypeError: if the value is not valid for the field's type,
                               with the validation result attached
            :raises ValueError: if the extra check fails

            :meta public:
        """
        if self.__readonly and self.is_defined_on(instance):
            raise AttributeError(f"Field {self.__name!r} is readonly: it can only be set once.")
        if self._is_validation_enabled(instance):
            value = self._check(instance, value)
        setattr(instance, self.__attr_name, value)

    @final
    def __delete__(self, instance: Any) -> None:
        """
            :raises AttributeError: if the field is readonly
            :raises AttributeError: if the field has no value on the instance

            :meta public:
        """
        if self.__readonly:
            raise AttributeError(f"Field {self.__name!r} is readonly: it cannot be deleted.")
        if not self.is_defined_on(instance):
            raise _no_attribute(self.__owner, self.__name)
        delattr(instance, self.__attr_name)

    def _check(self, instance: Any, value: Any) -> T:
        normalized = cast(T, validated(value, self.__type, self.options()))
        validator = self.__validator
        if validator is None or validator(instance, normalized):
            return normalized
        msg = (f"Invalid value {normalized!r} for field {self.__name!r} "
               f"of type {get_type_name(self.__type)}.")
        if self.__error_msg is not None:
            msg += f" {self.__error_msg}"
        raise ValueError(msg)

    def _is_validation_enabled(self, instance: Any) -> bool:
        """
            Whether values assigned on the given instance are validated.
            Always :obj:`True` here, subclasses can override it.

            :meta public:
        """
        return True

    def __repr__(self) -> str:
        name = getattr(self, f"_{Field.__name__}__name", "<unbound>")
        return f"Field({name}: {get_type_name(self.__type)})"
