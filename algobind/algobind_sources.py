"""
Catalogue data sources.

A source produces the raw catalogue: a mapping from fully-qualified
algorithm name to its signature record. The registry calls `fetch()` for
synchronous population and `fetch_async()` when population is driven by
callbacks on a running event loop.
"""
from __future__ import annotations

import copy
import os
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from algobind.algobind_datatypes import CatalogueFetchError, CatalogueFormatError
from algobind.algobind_debug import dbg


def check_catalogue(data: Any) -> Dict[str, Dict[str, Any]]:
    """Validate the outer shape of a fetched catalogue."""
    if not isinstance(data, dict):
        raise CatalogueFormatError(f"Catalogue must be a mapping, got {type(data).__name__}")
    for name, record in data.items():
        if not isinstance(name, str) or not isinstance(record, dict):
            raise CatalogueFormatError(f"Malformed catalogue entry: {name!r}")
    return data


class CatalogueSource(ABC):

    @abstractmethod
    def fetch(self) -> Dict[str, Dict[str, Any]]:
        raise NotImplementedError

    async def fetch_async(self) -> Dict[str, Dict[str, Any]]:
        return self.fetch()


class StaticCatalogue(CatalogueSource):
    """An in-memory catalogue. Each fetch returns an independent copy."""

    def __init__(self, catalogue: Dict[str, Dict[str, Any]]):
        self.catalogue = catalogue
        self.fetch_count = 0

    def fetch(self):
        self.fetch_count += 1
        return copy.deepcopy(check_catalogue(self.catalogue))


class CallableCatalogue(CatalogueSource):
    """Adapts a plain zero-argument callable into a source."""

    def __init__(self, loader: Callable[[], Dict[str, Dict[str, Any]]]):
        self.loader = loader

    def fetch(self):
        try:
            data = self.loader()
        except CatalogueFormatError:
            raise
        except Exception as e:
            raise CatalogueFetchError(f"Catalogue loader failed: {e}") from e
        return check_catalogue(data)


class FileCatalogue(CatalogueSource):
    def __init__(self, path: str, fmt: Optional[str] = None):
        self.path = os.path.expanduser(path)
        self.fmt = fmt

    def fetch(self):
        from algobind.algobind_serialize import deserialize, format_for_path
        dbg("FileCatalogue.fetch", self.path)
        try:
            with open(self.path, "rb") as f:
                raw = f.read()
        except OSError as e:
            raise CatalogueFetchError(f"Cannot read catalogue file {self.path}: {e}") from e
        try:
            data = deserialize(raw, fmt=self.fmt or format_for_path(self.path))
        except Exception as e:
            raise CatalogueFormatError(f"Cannot parse catalogue file {self.path}: {e}") from e
        return check_catalogue(data)


class HttpCatalogue(CatalogueSource):
    """
    Fetches the catalogue from an HTTP endpoint.

    `config` follows the http helpers: timeout, retries, backoff, headers,
    params.
    """

    def __init__(self, url: str, config: Optional[Dict[str, Any]] = None):
        self.url = url
        self.config = dict(config or {})

    def fetch(self):
        from algobind import algobind_http
        try:
            data = algobind_http.http_get(self.url, self.config)
        except Exception as e:
            raise CatalogueFetchError(f"Failed to fetch catalogue from {self.url}: {e}") from e
        return check_catalogue(data)

    async def fetch_async(self):
        from algobind import algobind_http
        try:
            data = await algobind_http.http_get_async(self.url, self.config)
        except Exception as e:
            raise CatalogueFetchError(f"Failed to fetch catalogue from {self.url}: {e}") from e
        return check_catalogue(data)


def as_source(obj: Any) -> CatalogueSource:
    """Coerce a source-like value: a CatalogueSource, a dict, a callable, or a locator string."""
    match obj:
        case CatalogueSource():
            return obj
        case dict():
            return StaticCatalogue(obj)
        case str() if obj.startswith(("http://", "https://")):
            return HttpCatalogue(obj)
        case str():
            return FileCatalogue(obj[7:] if obj.startswith("file://") else obj)
        case _ if callable(obj):
            return CallableCatalogue(obj)
    raise TypeError(f"Cannot use {type(obj).__name__} as a catalogue source")
