"""
Calling-convention reconciliation for bound members.

A bound member can be called either with positional values in declared
order or with a single record of named arguments (a plain dict, or Python
keyword arguments). Both forms normalize to one named-argument dict.
"""
from typing import Any, Dict, Optional, Sequence

from algobind.algobind_datatypes import Signature, ArgumentCollisionError, InvalidArgumentsError

# Sentinel: "no receiver", distinct from a receiver that happens to be None
NO_RECEIVER = object()


def is_plain_record(value: Any) -> bool:
    """True for a bare key/value record, False for dict subclasses and typed values."""
    return type(value) is dict


def adapt_call(signature: Signature, args: Sequence[Any], kwargs: Optional[Dict[str, Any]] = None,
               *, receiver: Any = NO_RECEIVER) -> Dict[str, Any]:
    """Normalize a call into the named-argument record for `signature`.

    `receiver` is bound to the first declared argument (instance members).
    """
    kwargs = kwargs or {}
    names = signature.arg_names()
    has_receiver = receiver is not NO_RECEIVER

    if kwargs and not args:
        named = dict(kwargs)
    elif len(args) == 1 and not kwargs and is_plain_record(args[0]):
        named = dict(args[0])
    else:
        values = list(args)
        if has_receiver:
            values.insert(0, receiver)
        if len(values) > len(names):
            raise InvalidArgumentsError(
                f"Too many ({len(values)}) arguments to function: {signature.name}")
        named = dict(zip(names, values))
        for key, value in kwargs.items():
            if key in named:
                raise ArgumentCollisionError(
                    f"Argument {key} of {signature.name} given both positionally and by name")
            named[key] = value
        return named

    if has_receiver:
        first = names[0]
        if first in named:
            raise ArgumentCollisionError(
                f"Named args for {signature.name} can't contain keyword {first}")
        named[first] = receiver
    return named
