"""Conversion between Python values and Data API ``Field`` dicts.

The Data API carries every bound parameter and every result value as a dict
with one populated slot (``stringValue``, ``longValue``, ...). Parameters are
bound by name only.
"""

import collections.abc
import enum
from dataclasses import dataclass

from rdsdataapi.exceptions import ArgumentError, DecodeError, ParameterTypeError

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class FieldKind(enum.Enum):
    BLOB = "blobValue"
    BOOLEAN = "booleanValue"
    DOUBLE = "doubleValue"
    NULL = "isNull"
    LONG = "longValue"
    STRING = "stringValue"

    @property
    def slot(self):
        return self.value


# First populated slot wins when a field carries more than one.
DECODE_ORDER = (
    FieldKind.BLOB,
    FieldKind.BOOLEAN,
    FieldKind.DOUBLE,
    FieldKind.NULL,
    FieldKind.LONG,
    FieldKind.STRING,
)

_ENCODERS = {
    FieldKind.BLOB: bytes,
    FieldKind.BOOLEAN: bool,
    FieldKind.DOUBLE: float,
    FieldKind.NULL: lambda _: True,
    FieldKind.LONG: int,
    FieldKind.STRING: str,
}

_DECODERS = {
    FieldKind.BLOB: bytes,
    FieldKind.BOOLEAN: bool,
    FieldKind.DOUBLE: float,
    FieldKind.NULL: lambda _: None,
    FieldKind.LONG: int,
    FieldKind.STRING: str,
}


def classify(name, value):
    """Return the FieldKind for a Python value bound as parameter ``name``."""
    if value is None:
        return FieldKind.NULL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return FieldKind.BOOLEAN
    if isinstance(value, int):
        if not INT64_MIN <= value <= INT64_MAX:
            raise ParameterTypeError(name, type(value).__name__, "value does not fit in 64 bits")
        return FieldKind.LONG
    if isinstance(value, float):
        return FieldKind.DOUBLE
    if isinstance(value, str):
        return FieldKind.STRING
    if isinstance(value, (bytes, bytearray, memoryview)):
        return FieldKind.BLOB
    raise ParameterTypeError(name, type(value).__name__)


def _check_name(name):
    if not isinstance(name, str) or not name:
        raise ArgumentError(
            f"parameter {name!r} has no name; the Data API only supports named parameters")


@dataclass(frozen=True)
class Parameter:
    """A named, typed bind value.

    Constructing one directly is checked the same way as ``bind``: the name
    must be non-empty and ``kind`` must be the kind of ``value``.
    """

    name: str
    kind: FieldKind
    value: object

    def __post_init__(self):
        _check_name(self.name)
        observed = classify(self.name, self.value)
        if observed is not self.kind:
            raise ParameterTypeError(
                self.name, type(self.value).__name__,
                f"declared as {self.kind} but the value is {observed.name}")
        # Freeze mutable buffers so a queued parameter set cannot change later.
        if observed is FieldKind.BLOB:
            object.__setattr__(self, "value", bytes(self.value))

    @classmethod
    def bind(cls, name, value):
        _check_name(name)
        return cls(name, classify(name, value), value)

    def to_wire(self):
        return {"name": self.name, "value": {self.kind.slot: _ENCODERS[self.kind](self.value)}}


def bind_parameters(parameters):
    """Turn caller parameters into an ordered tuple of Parameter.

    Accepts None, a mapping of name -> value, or a sequence of Parameter.
    Any positional value is rejected.
    """
    if parameters is None:
        return ()
    if isinstance(parameters, collections.abc.Mapping):
        return tuple(Parameter.bind(name, value) for name, value in parameters.items())
    if isinstance(parameters, (str, bytes, bytearray)):
        raise ArgumentError("parameters must be a mapping of names to values, got a single "
                            f"{type(parameters).__name__}")

    bound = []
    for i, p in enumerate(parameters):
        if not isinstance(p, Parameter):
            raise ArgumentError(
                f"positional parameter at index {i}; the Data API only supports named parameters")
        bound.append(p)
    return tuple(bound)


def encode_parameters(parameters):
    """Caller parameters -> list of Data API SqlParameter dicts."""
    return [p.to_wire() for p in bind_parameters(parameters)]


def field_kind(field):
    for kind in DECODE_ORDER:
        if field.get(kind.slot) is not None:
            return kind
    raise DecodeError(f"undefined field value (slots present: {sorted(field)})")


def decode_field(field):
    """Data API Field dict -> Python value."""
    kind = field_kind(field)
    return _DECODERS[kind](field[kind.slot])
