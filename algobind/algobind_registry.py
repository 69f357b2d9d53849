"""
The algorithm registry: a lazily populated cache of catalogue functions.

The server publishes a catalogue naming every algorithm the caller may use,
with its return type, its ordered arguments and their documentation. The
registry turns that catalogue into one `FunctionHandle` per algorithm and
remembers which of them have been bound onto client types.
"""
from __future__ import annotations

import asyncio
import os
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from algobind.algobind_datatypes import (
    Signature, TypeMatcher, HierarchyTypeMatcher,
    UnknownFunctionError, CatalogueFetchError,
)
from algobind.algobind_debug import dbg
from algobind.algobind_function import FunctionHandle
from algobind.algobind_sources import CatalogueSource, as_source, check_catalogue

SuccessCallback = Callable[[], Any]
FailureCallback = Callable[[BaseException], Any]


class AlgorithmRegistry:
    """Maps algorithm names to handles, populated once per reset epoch.

    Population is all-or-nothing: the handle mapping is assembled off to the
    side and only published once every catalogue entry has been built.
    """

    def __init__(self, source: Any = None, type_matcher: Optional[TypeMatcher] = None,
                 invocation_factory: Optional[Callable] = None):
        self.source: Optional[CatalogueSource] = as_source(source) if source is not None else None
        self.type_matcher = type_matcher or HierarchyTypeMatcher()
        self.invocation_factory = invocation_factory
        self._api: Optional[Dict[str, FunctionHandle]] = None
        self._bound: set[str] = set()
        # Single-flight state for callback-driven population
        self._pending: Optional[asyncio.Task] = None
        self._subscribers: List[Tuple[SuccessCallback, Optional[FailureCallback]]] = []
        self._epoch = 0

    # --- Population ---

    @property
    def is_populated(self) -> bool:
        return self._api is not None

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    def _build(self, data: Any) -> Dict[str, FunctionHandle]:
        api: Dict[str, FunctionHandle] = {}
        for name, record in check_catalogue(data).items():
            sig = Signature.from_record(name, record)
            api[name] = FunctionHandle(name, sig, self.invocation_factory)
        return api

    def _require_source(self) -> CatalogueSource:
        if self.source is None:
            raise CatalogueFetchError("No catalogue source configured")
        return self.source

    def _populate_sync(self):
        api = self._build(self._require_source().fetch())
        self._api = api
        dbg("AlgorithmRegistry populated", "count", len(api))

    def populate(self, on_success: Optional[SuccessCallback] = None,
                 on_failure: Optional[FailureCallback] = None):
        """Load the catalogue if it has not been loaded yet.

        Without `on_success` the call blocks until the registry is populated
        and fetch errors propagate. With `on_success` the outcome is reported
        through the callbacks; on a running event loop the fetch happens in a
        task and this call returns immediately. Callers arriving while that
        task is in flight share its outcome instead of fetching again.
        """
        if self._api is not None:
            if on_success is not None:
                on_success()
            return
        if on_success is None:
            self._populate_sync()
            return
        if self._pending is not None:
            dbg("AlgorithmRegistry.populate", "joining pending fetch")
            self._subscribers.append((on_success, on_failure))
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None:
            try:
                self._populate_sync()
            except Exception as e:
                if on_failure is None:
                    raise
                on_failure(e)
                return
            on_success()
            return
        self._subscribers = [(on_success, on_failure)]
        self._pending = loop.create_task(self._fetch_and_notify(self._epoch))

    initialize = populate

    async def _fetch_and_notify(self, epoch: int):
        error: Optional[BaseException] = None
        try:
            api = self._build(await self._require_source().fetch_async())
        except Exception as e:
            error = e
            dbg("AlgorithmRegistry fetch failed:", e)
        if epoch != self._epoch:
            # reset() ran while we were fetching; this outcome belongs to a dead epoch
            return
        if error is None and self._api is None:
            self._api = api
            dbg("AlgorithmRegistry populated", "count", len(api))
        if self._api is not None:
            # A synchronous populate may have filled the epoch while we waited
            error = None
        subscribers, self._subscribers = self._subscribers, []
        self._pending = None
        self._notify(asyncio.get_running_loop(), subscribers, error)

    def _notify(self, loop: asyncio.AbstractEventLoop,
                subscribers: List[Tuple[SuccessCallback, Optional[FailureCallback]]],
                error: Optional[BaseException]):
        """Deliver one outcome to every subscriber.

        A raising callback does not stop the others. Errors nobody handled
        go to the loop's exception handler.
        """
        for ok, fail in subscribers:
            try:
                if error is None:
                    ok()
                elif fail is not None:
                    fail(error)
                else:
                    loop.call_exception_handler({
                        "message": "Catalogue population failed with no failure callback",
                        "exception": error,
                    })
            except Exception as e:
                loop.call_exception_handler({
                    "message": "Catalogue population callback raised",
                    "exception": e,
                })

    async def apopulate(self):
        """Awaitable population sharing the single-flight guard with `populate`."""
        if self._api is not None:
            return
        fut = asyncio.get_running_loop().create_future()

        def ok():
            if not fut.done():
                fut.set_result(None)

        def fail(e):
            if not fut.done():
                fut.set_exception(e)

        self.populate(ok, fail)
        await fut

    def reset(self):
        """Forget the catalogue and the bound-name set.

        Members already installed on target types keep the handles they were
        built with. A fetch still in flight is cancelled and its subscribers
        receive a `CatalogueFetchError` through their failure callbacks.
        """
        self._epoch += 1
        pending, subscribers = self._pending, self._subscribers
        self._pending = None
        self._subscribers = []
        self._api = None
        self._bound = set()
        dbg("AlgorithmRegistry reset", "epoch", self._epoch)
        if pending is not None:
            pending.cancel()
            self._notify(pending.get_loop(), subscribers,
                         CatalogueFetchError("registry reset while fetch pending"))

    # --- Queries ---

    def lookup(self, name: str) -> FunctionHandle:
        self.populate()
        func = self._api.get(name)
        if func is None:
            raise UnknownFunctionError(name)
        return func

    def all_signatures(self) -> Mapping[str, Signature]:
        self.populate()
        return MappingProxyType({name: f.get_signature() for name, f in self._api.items()})

    def functions(self) -> Mapping[str, FunctionHandle]:
        self.populate()
        return MappingProxyType(self._api)

    def unbound_functions(self) -> Dict[str, FunctionHandle]:
        self.populate()
        return {name: f for name, f in self._api.items() if name not in self._bound}

    unbound_entries = unbound_functions

    def mark_bound(self, name: str):
        self._bound.add(name)

    def is_bound(self, name: str) -> bool:
        return name in self._bound

    def call(self, name: str, *args, **kwargs) -> Any:
        """Call a catalogue function with positional (and keyword) arguments."""
        return self.lookup(name).call(*args, **kwargs)

    def apply(self, name: str, named_args: Dict[str, Any]) -> Any:
        """Call a catalogue function with a record of named arguments."""
        return self.lookup(name).apply(named_args)

    def __contains__(self, name: str) -> bool:
        self.populate()
        return name in self._api

    def __len__(self) -> int:
        self.populate()
        return len(self._api)


# ===================================================================
# Process default
# ===================================================================

_default_registry: Optional[AlgorithmRegistry] = None


def default_registry() -> AlgorithmRegistry:
    """The shared registry, created on first use.

    Its source is taken from ALGOBIND_CATALOGUE (a URL or a file path) when
    that variable is set.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = AlgorithmRegistry(os.environ.get("ALGOBIND_CATALOGUE") or None)
    return _default_registry


def set_default_registry(registry: Optional[AlgorithmRegistry]):
    global _default_registry
    _default_registry = registry
