"""
Projects catalogue functions onto client types as named members.

`Binder.plan` computes a `BindingTable` from the registry without touching
any type: which catalogue entries match a prefix, what member name each one
gets, and whether it is an instance or a static member. `BindingTable.install`
then attaches the members. `Binder.bind` does both.
"""
import collections.abc
import inspect
import types
from typing import Any, Dict, Iterator, List, Optional

from algobind.algobind_adapter import adapt_call
from algobind.algobind_datatypes import (
    Signature, TypeMatcher, InvalidArgumentsError, OBJECT_TYPE, strip_generic,
)
from algobind.algobind_debug import dbg
from algobind.algobind_function import FunctionHandle
from algobind.algobind_registry import AlgorithmRegistry, default_registry

COLLISION_SUFFIX = "_"


class BoundMember:
    """A generated member forwarding calls to one catalogue function.

    Works as a descriptor: looked up through an instance, an instance member
    binds that instance as its receiver; static members ignore the instance.
    The `signature` attribute marks the member as generated.
    """

    def __init__(self, function: FunctionHandle, member_name: str, is_instance: bool,
                 catalogue_name: Optional[str] = None):
        self.function = function
        self.signature: Signature = function.get_signature()
        self.member_name = member_name
        self.is_instance = is_instance
        self.catalogue_name = catalogue_name or function.name
        self.__name__ = member_name
        self.__doc__ = str(self)

    def __get__(self, obj, owner=None):
        if obj is None or not self.is_instance:
            return self
        return types.MethodType(self, obj)

    def __call__(self, *args, **kwargs):
        if self.is_instance:
            if not args:
                raise InvalidArgumentsError(f"{self.member_name} needs a receiver")
            named = adapt_call(self.signature, args[1:], kwargs, receiver=args[0])
        else:
            named = adapt_call(self.signature, args, kwargs)
        return self.function.apply(named)

    def __str__(self) -> str:
        return self.function.format_doc(self.member_name, self.is_instance)

    def __repr__(self) -> str:
        kind = "instance" if self.is_instance else "static"
        return f"<BoundMember {self.member_name} -> {self.catalogue_name} ({kind})>"


class BindingTable(collections.abc.Mapping):
    """Ordered member name -> BoundMember mapping produced by `Binder.plan`."""

    def __init__(self):
        self._members: Dict[str, BoundMember] = {}

    def add(self, member: BoundMember):
        if member.member_name in self._members:
            raise KeyError(f"Member {member.member_name!r} is already planned")
        self._members[member.member_name] = member

    def __getitem__(self, name: str) -> BoundMember:
        return self._members[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def instance_members(self) -> List[BoundMember]:
        return [m for m in self._members.values() if m.is_instance]

    def static_members(self) -> List[BoundMember]:
        return [m for m in self._members.values() if not m.is_instance]

    def install(self, target: Any):
        for name, member in self._members.items():
            setattr(target, name, member)


class AlgorithmNamespace:
    """Attribute namespace holding catalogue functions no type has claimed."""

    def __init__(self, path: str = ""):
        self._path = path

    def __repr__(self) -> str:
        names = sorted(k for k in vars(self) if not k.startswith("_"))
        return f"<AlgorithmNamespace {self._path or '<root>'} {names}>"


def _is_generated(value: Any) -> bool:
    return callable(value) and getattr(value, "signature", None) is not None


class Binder:
    def __init__(self, registry: Optional[AlgorithmRegistry] = None,
                 type_matcher: Optional[TypeMatcher] = None):
        self._registry = registry
        self._type_matcher = type_matcher

    @property
    def registry(self) -> AlgorithmRegistry:
        return self._registry if self._registry is not None else default_registry()

    @property
    def type_matcher(self) -> TypeMatcher:
        return self._type_matcher or self.registry.type_matcher

    def classify(self, signature: Signature, type_name: str) -> bool:
        """True when `signature` should become an instance member of `type_name`."""
        if not signature.args:
            return False
        first_type = strip_generic(signature.args[0].type)
        if first_type is None or first_type == OBJECT_TYPE:
            return False
        return self.type_matcher.is_subtype(first_type, type_name)

    def _is_taken(self, target: Any, name: str, table: BindingTable, catalogue_name: str) -> bool:
        if name in table:
            return True
        if target is None or not hasattr(target, name):
            return False
        existing = inspect.getattr_static(target, name, None)
        # Re-binding the same catalogue entry replaces our own earlier member
        if isinstance(existing, BoundMember) and existing.catalogue_name == catalogue_name:
            return False
        return True

    def plan(self, prefix: str, type_name: str, prepend: str = "", target: Any = None) -> BindingTable:
        """Compute the members `bind` would install, without installing them.

        When `target` is given, names it already has are avoided by appending
        `_` until a free name is found.
        """
        table = BindingTable()
        for name, func in self.registry.functions().items():
            parts = name.split(".")
            if len(parts) != 2 or parts[0] != prefix:
                continue
            is_instance = self.classify(func.get_signature(), type_name)
            member_name = prepend + parts[1]
            while self._is_taken(target, member_name, table, name):
                dbg("Binder collision", name, "->", member_name + COLLISION_SUFFIX)
                member_name += COLLISION_SUFFIX
            table.add(BoundMember(func, member_name, is_instance, name))
        return table

    def bind(self, target: Any, prefix: str, type_name: str, prepend: str = "") -> BindingTable:
        """Install every `<prefix>.<name>` catalogue function on `target`."""
        self.registry.populate()
        table = self.plan(prefix, type_name, prepend or "", target=target)
        for member in table.values():
            self.registry.mark_bound(member.catalogue_name)
            dbg("Binder.bind", member.catalogue_name, "as",
                "instance" if member.is_instance else "static", member.member_name)
        table.install(target)
        return table

    import_api = bind

    def unbind(self, target: Any) -> List[str]:
        """Remove every generated member from `target`, whichever bind installed it."""
        removed = []
        for name, value in list(vars(target).items()):
            if _is_generated(value):
                delattr(target, name)
                removed.append(name)
        dbg("Binder.unbind", getattr(target, "__name__", target), removed)
        return removed

    clear_api = unbind

    def bind_unbound(self, namespace: Optional[AlgorithmNamespace] = None) -> AlgorithmNamespace:
        """Expose every not-yet-bound catalogue function under nested namespaces.

        `Terrain.slope` becomes `namespace.Terrain.slope`.
        """
        root = namespace if namespace is not None else AlgorithmNamespace()
        for name, func in self.registry.unbound_functions().items():
            parts = name.split(".")
            node = root
            for i, part in enumerate(parts[:-1]):
                child = getattr(node, part, None)
                while child is not None and not isinstance(child, AlgorithmNamespace):
                    part += COLLISION_SUFFIX
                    child = getattr(node, part, None)
                if child is None:
                    child = AlgorithmNamespace(".".join(parts[:i + 1]))
                    setattr(node, part, child)
                node = child
            member_name = parts[-1]
            while self._is_taken(node, member_name, BindingTable(), name):
                member_name += COLLISION_SUFFIX
            setattr(node, member_name, BoundMember(func, member_name, False, name))
            self.registry.mark_bound(name)
        return root
