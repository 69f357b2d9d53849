from algobind.algobind_datatypes import (
    ArgSpec, Signature, Invocation, TypeMatcher, HierarchyTypeMatcher, strip_generic,
    UnknownFunctionError, ArgumentCollisionError, InvalidArgumentsError,
    CatalogueFetchError, CatalogueFormatError,
)
from algobind.algobind_function import FunctionHandle
from algobind.algobind_registry import AlgorithmRegistry, default_registry, set_default_registry
from algobind.algobind_binder import Binder, BindingTable, BoundMember, AlgorithmNamespace
from algobind.algobind_adapter import adapt_call, is_plain_record
from algobind.algobind_sources import (
    CatalogueSource, StaticCatalogue, FileCatalogue, HttpCatalogue, CallableCatalogue,
)
from algobind.algobind_printer import Printer
