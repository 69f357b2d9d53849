"""
Defines the core data types for the algobind binding layer.

This module provides the catalogue-facing records (signatures and argument
specs), the type matching capability used to classify bound members, the
default invocation result, and the exceptions raised across the package.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
import re


# =================================================================
# Exceptions
# =================================================================

class UnknownFunctionError(KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown built-in function name: {self.name}"


class ArgumentCollisionError(TypeError):
    """A named call redeclared an argument that is already bound."""
    pass


class InvalidArgumentsError(TypeError):
    """Arguments could not be matched against a signature."""
    pass


class CatalogueFetchError(RuntimeError):
    """Fetching the algorithm catalogue failed."""
    pass


class CatalogueFormatError(ValueError):
    pass


# =================================================================
# Type names
# =================================================================

_GENERIC_SUFFIX = re.compile(r"<.*>\s*$")

OBJECT_TYPE = "Object"


def strip_generic(type_name: Optional[str]) -> Optional[str]:
    """'List<Feature>' -> 'List'. Generic parameters carry no meaning here."""
    if not isinstance(type_name, str):
        return type_name
    return _GENERIC_SUFFIX.sub("", type_name).strip()


class TypeMatcher(ABC):
    """Answers whether one named type is accepted where another is declared."""

    @abstractmethod
    def is_subtype(self, declared: str, candidate: str) -> bool:
        raise NotImplementedError


class HierarchyTypeMatcher(TypeMatcher):
    """Subtyping over a small single-parent hierarchy of catalogue types.

    `Object` accepts every type; every other type accepts itself and its
    descendants. Extra `{child: parent}` edges extend the built-in tree.
    """

    BUILTIN_PARENTS: Dict[str, str] = {
        "Image": "Element",
        "Feature": "Element",
        "Collection": "Element",
        "ImageCollection": "Collection",
        "FeatureCollection": "Collection",
    }

    def __init__(self, parents: Optional[Dict[str, str]] = None):
        self.parents: Dict[str, str] = dict(self.BUILTIN_PARENTS)
        if parents:
            self.parents.update(parents)

    def is_subtype(self, declared: str, candidate: str) -> bool:
        declared = strip_generic(declared)
        candidate = strip_generic(candidate)
        if declared == OBJECT_TYPE:
            return True
        seen = set()
        current = candidate
        while current is not None and current not in seen:
            if current == declared:
                return True
            seen.add(current)
            current = self.parents.get(current)
        return False


# =================================================================
# Signatures
# =================================================================

class ArgSpec:
    def __init__(self, name: str, type: Optional[str] = None, required: bool = True,
                 default: Any = None, description: str = ""):
        self.name = name
        self.type = strip_generic(type)
        self.required = required
        self.default = default
        self.description = description or ""

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ArgSpec':
        if not isinstance(record, dict) or "name" not in record:
            raise CatalogueFormatError(f"Malformed argument record: {record!r}")
        if "required" in record:
            required = bool(record["required"])
        else:
            required = not record.get("optional", False)
        return cls(
            name=record["name"],
            type=record.get("type"),
            required=required,
            default=record.get("default"),
            description=record.get("description", ""),
        )

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {"name": self.name, "type": self.type, "required": self.required}
        if self.default is not None:
            rec["default"] = self.default
        if self.description:
            rec["description"] = self.description
        return rec

    def __repr__(self) -> str:
        opt = "" if self.required else ", optional"
        return f"ArgSpec({self.name!r}: {self.type!r}{opt})"

    def __eq__(self, other):
        return isinstance(other, ArgSpec) and self.to_record() == other.to_record()


class Signature:
    """Declared name, return type and ordered parameter list of an algorithm."""

    def __init__(self, name: Optional[str], returns: Optional[str], args: List[ArgSpec],
                 description: str = "", deprecated: Optional[str] = None):
        self.name = name
        self.returns = strip_generic(returns)
        self.args = list(args)
        self.description = description or ""
        self.deprecated = deprecated

    @classmethod
    def from_record(cls, name: str, record: Dict[str, Any]) -> 'Signature':
        if not isinstance(record, dict):
            raise CatalogueFormatError(f"Malformed signature record for {name!r}: {record!r}")
        args = [ArgSpec.from_record(a) for a in record.get("args") or []]
        return cls(
            name=name,
            returns=record.get("returns"),
            args=args,
            description=record.get("description", ""),
            deprecated=record.get("deprecated"),
        )

    def copy(self) -> 'Signature':
        return Signature(self.name, self.returns, self.args, self.description, self.deprecated)

    def arg_names(self) -> List[str]:
        return [a.name for a in self.args]

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "returns": self.returns,
            "args": [a.to_record() for a in self.args],
            "description": self.description,
        }
        if self.deprecated:
            rec["deprecated"] = self.deprecated
        return rec

    def __repr__(self) -> str:
        return f"Signature(name={self.name!r}, returns={self.returns!r}, args={self.args!r})"

    def __eq__(self, other):
        return isinstance(other, Signature) and (
            self.name == other.name and
            self.returns == other.returns and
            self.args == other.args and
            self.description == other.description
        )


# =================================================================
# Invocation results
# =================================================================

class Invocation:
    """The result of applying a catalogue function to named arguments.

    Stands in for an expression-graph node: it is never evaluated locally,
    only encoded for the server.
    """

    def __init__(self, func, args: Dict[str, Any]):
        self.func = func
        self.args = args

    def encode(self) -> Dict[str, Any]:
        return {
            "type": "Invocation",
            "functionName": self.func.encode(),
            "arguments": {k: _encode_value(v) for k, v in self.args.items()},
        }

    def __repr__(self) -> str:
        return f"Invocation({self.func.encode()!r}, {self.args!r})"

    def __eq__(self, other):
        if not isinstance(other, Invocation):
            return NotImplemented
        return self.func.encode() == other.func.encode() and self.args == other.args


def _encode_value(value: Any) -> Any:
    match value:
        case Invocation():
            return value.encode()
        case list() | tuple():
            return [_encode_value(v) for v in value]
        case dict():
            return {k: _encode_value(v) for k, v in value.items()}
        case _:
            return value


def default_invocation_factory(func, named_args: Dict[str, Any]) -> Invocation:
    """Promote named arguments against the function's signature.

    Rejects unknown names and missing required arguments; optional
    arguments given as None are dropped.
    """
    sig = func.get_signature()
    known = set()
    promoted: Dict[str, Any] = {}
    for spec in sig.args:
        known.add(spec.name)
        value = named_args.get(spec.name)
        if value is None:
            if spec.required:
                raise InvalidArgumentsError(
                    f"Required argument ({spec.name}) missing to function: {sig.name}")
            continue
        promoted[spec.name] = value
    unknown = [k for k in named_args if k not in known]
    if unknown:
        raise InvalidArgumentsError(
            f"Unrecognized arguments ({', '.join(unknown)}) to function: {sig.name}")
    return Invocation(func, promoted)
