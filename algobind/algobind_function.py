"""
Handles for remote algorithms declared by the catalogue.
"""
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from algobind.algobind_adapter import adapt_call
from algobind.algobind_datatypes import Signature, default_invocation_factory

if TYPE_CHECKING:
    from algobind.algobind_registry import AlgorithmRegistry


class FunctionHandle:
    """One remote algorithm.

    The handle owns a private copy of its signature, with `name` stamped on
    it, so mutating the signature object passed in is never observed here.
    """

    def __init__(self, name: str, signature: Signature,
                 invocation_factory: Optional[Callable[['FunctionHandle', Dict[str, Any]], Any]] = None):
        sig = signature.copy()
        sig.name = name
        self._signature = sig
        self._invocation_factory = invocation_factory or default_invocation_factory

    @classmethod
    def lookup(cls, name: str, registry: Optional['AlgorithmRegistry'] = None) -> 'FunctionHandle':
        """Return the registered handle for `name` (populating the registry if needed)."""
        if registry is None:
            from algobind.algobind_registry import default_registry
            registry = default_registry()
        return registry.lookup(name)

    @property
    def name(self) -> str:
        return self._signature.name

    def get_signature(self) -> Signature:
        return self._signature

    def encode(self) -> str:
        return self._signature.name

    def apply(self, named_args: Dict[str, Any]) -> Any:
        return self._invocation_factory(self, named_args)

    def call(self, *args, **kwargs) -> Any:
        return self.apply(adapt_call(self._signature, args, kwargs))

    def format_doc(self, name: Optional[str] = None, is_instance: bool = False) -> str:
        from algobind.algobind_printer import Printer
        return Printer().format_signature(self._signature, name=name, is_instance=is_instance)

    def __str__(self) -> str:
        return self.format_doc()

    def __repr__(self) -> str:
        return f"<FunctionHandle {self.name}>"
