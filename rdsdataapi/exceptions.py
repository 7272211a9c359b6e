import collections.abc
import json


class Error(Exception):
    pass

class Warning(Exception):
    pass

class InterfaceError(Error):
    pass

class DatabaseError(Error):
    pass

class InternalError(DatabaseError):
    pass

class OperationalError(DatabaseError):
    pass

class ProgrammingError(DatabaseError):
    pass

class IntegrityError(DatabaseError):
    pass

class DataError(DatabaseError):
    pass

class NotSupportedError(DatabaseError):
    pass


class ConfigError(InterfaceError):
    """Missing or malformed connection configuration."""

class ClosedError(InterfaceError):
    """A connection, cursor, row iterator or statement was used after close."""

class ArgumentError(ProgrammingError):
    """A parameter was bound without a name."""

class StateError(ProgrammingError):
    """Illegal transaction transition, e.g. begin while a transaction is open."""

class NotReadyError(ProgrammingError):
    """A deferred result was read before its statement was flushed."""

class ParameterTypeError(DataError, TypeError):
    """A parameter value is not one of the kinds the Data API can carry."""

    def __init__(self, name, observed, reason=None):
        self.name = name
        self.observed = observed
        msg = (f"parameter '{name}' has unsupported type {observed}; supported are "
               "str, bytes, bool, float, int (64-bit) and None")
        if reason:
            msg = f"parameter '{name}' of type {observed}: {reason}"
        super().__init__(msg)

class DecodeError(DataError):
    """A result field had no recognised value slot."""

class UnsupportedError(NotSupportedError):
    """The Data API does not offer the requested capability."""


class RemoteError(OperationalError):
    """A Data API call failed. The botocore exception is chained as __cause__."""

    def __init__(self, operation, message, *, code=None, sql=None, params=None):
        self.operation = operation
        self.code = code
        ctx = {"operation": operation, "code": code}
        if sql is not None:
            ctx["sql"] = sql
            ctx["params"] = _format_params_for_error(params)
        super().__init__(f"failed to {_describe(operation)}: {message}\nContext: "
                         + json.dumps(ctx, ensure_ascii=False))

class CancelledError(OperationalError):
    """A Data API call was abandoned because it exceeded the caller's timeout."""

    def __init__(self, operation, message):
        self.operation = operation
        super().__init__(f"{_describe(operation)} cancelled: {message}")


def _describe(operation):
    # "BatchExecuteStatement" -> "batch execute statement"
    out = []
    for ch in operation:
        if ch.isupper() and out:
            out.append(" ")
        out.append(ch.lower())
    return "".join(out)

def _format_value_for_error(v, *, max_str=200, max_bytes=64):
    if v is None:
        return None
    if isinstance(v, (bool, int, float)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        b = bytes(v)
        if len(b) <= max_bytes:
            return {"_type": "bytes", "hex": b.hex(), "len": len(b)}
        head = b[:max_bytes]
        return {"_type": "bytes", "hex_prefix": head.hex(), "len": len(b)}
    if isinstance(v, str):
        if len(v) <= max_str:
            return v
        return v[:max_str] + "…"
    s = repr(v)
    if len(s) <= max_str:
        return s
    return s[:max_str] + "…"

def _format_params_for_error(params, *, max_items=50):
    """Render wire parameters (or a plain mapping) for an error message."""
    if params is None:
        return None
    if isinstance(params, collections.abc.Mapping):
        items = list(params.items())
    else:
        items = []
        for p in params:
            value = p.get("value") or {}
            # Wire descriptors hold exactly one populated slot.
            slot = next(iter(value.values()), None) if "isNull" not in value else None
            items.append((p.get("name"), slot))
    out = {}
    for i, (k, v) in enumerate(items):
        if i >= max_items:
            out["_truncated"] = True
            break
        out[str(k)] = _format_value_for_error(v)
    return out
