"""In-memory cache of API discovery information."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable

from declpattern.schema import (
    GroupVersion,
    GroupVersionKind,
    GroupVersionResource,
    NoKindMatchError,
    NoResourceMatchError,
    NotFoundError,
    RESTMapping,
    RESTScope,
)

_log = logging.getLogger(__name__)


@dataclass
class APIGroup:
    """An API group as reported by discovery."""

    name: str
    versions: list[str] = field(default_factory=list)
    preferred_version: str = ""


@dataclass
class APIResource:
    """One resource served in a group/version."""

    name: str
    kind: str
    namespaced: bool = False


@dataclass
class APIResourceList:
    """The resources served for one group/version."""

    group_version: str
    resources: list[APIResource] = field(default_factory=list)


class Discovery(ABC):
    """Source of discovery information, usually the API server."""

    @abstractmethod
    def server_groups(self) -> Iterable[APIGroup]:
        """Return every API group the server knows."""

    @abstractmethod
    def server_resources_for_group_version(self, group_version: str) -> APIResourceList:
        """Return the resources served for a group/version string such as ``apps/v1``."""


@dataclass(frozen=True)
class CachedResource:
    """The cached information for one resource."""

    resource: str
    scope: RESTScope
    gvk: GroupVersionKind

    def gvr(self) -> GroupVersionResource:
        return self.gvk.group_version().with_resource(self.resource)

    def rest_mapping(self) -> RESTMapping:
        return RESTMapping(resource=self.gvr(), group_version_kind=self.gvk, scope=self.scope)


_NO_MATCH = (NoKindMatchError, NoResourceMatchError, NotFoundError)


class CachedGroupVersion:
    """All resource information for one group/version, fetched once."""

    def __init__(self, gv: GroupVersion):
        self.gv = gv
        self._lock = threading.Lock()
        self._resources: dict[str, CachedResource] | None = None

    def fetch_server_resources(self, discovery: Discovery) -> dict[str, CachedResource]:
        """Return the resources of this group/version, querying discovery if not cached.

        A group/version the server does not know yields an empty result, which is not cached.
        """
        with self._lock:
            if self._resources is not None:
                return dict(self._resources)

            _log.info("discovering server resources for group/version gv=%s", self.gv)
            try:
                resource_list = discovery.server_resources_for_group_version(str(self.gv))
            except _NO_MATCH:
                return {}
            except Exception as exc:
                _log.info(
                    "unexpected error from ServerResourcesForGroupVersion(%s): %s", self.gv, exc
                )
                raise RuntimeError(
                    f"error from ServerResourcesForGroupVersion({self.gv}): {exc}"
                ) from exc

            result: dict[str, CachedResource] = {}
            for resource in resource_list.resources:
                # Names containing a slash are subresources; they get no mapping.
                if "/" in resource.name:
                    continue
                scope = RESTScope.NAMESPACE if resource.namespaced else RESTScope.ROOT
                result[resource.name] = CachedResource(
                    resource=resource.name,
                    scope=scope,
                    gvk=self.gv.with_kind(resource.kind),
                )
            self._resources = result
            return dict(result)

    def find_rest_mapping(self, discovery: Discovery, kind: str) -> RESTMapping | None:
        """Return the mapping for kind in this group/version, or None."""
        for resource in self.fetch_server_resources(discovery).values():
            if resource.gvk.kind == kind:
                return resource.rest_mapping()
        return None

    def kinds_for(
        self, filter_gvr: GroupVersionResource, discovery: Discovery
    ) -> list[GroupVersionKind]:
        """Return the kinds whose resources match the group, and version and resource if set."""
        matches = []
        for resource in self.fetch_server_resources(discovery).values():
            gvr = resource.gvr()
            if gvr.group != filter_gvr.group:
                continue
            if filter_gvr.version and gvr.version != filter_gvr.version:
                continue
            if filter_gvr.resource and gvr.resource != filter_gvr.resource:
                continue
            matches.append(resource.gvk)
        return matches


class DiscoveryCache:
    """Cache of server groups and of per-group/version resources."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._all_groups: dict[str, APIGroup] | None = None
        self._group_versions: dict[GroupVersion, CachedGroupVersion] = {}

    def fetch_all_groups(self, discovery: Discovery) -> dict[str, APIGroup]:
        """Return all server groups by name, querying discovery if not cached."""
        with self._lock:
            if self._all_groups is None:
                _log.info("discovering server groups")
                try:
                    server_groups = list(discovery.server_groups())
                except Exception as exc:
                    _log.info("unexpected error from ServerGroups: %s", exc)
                    raise RuntimeError(f"error from ServerGroups: {exc}") from exc
                self._all_groups = {group.name: group for group in server_groups}
            return dict(self._all_groups)

    def kinds_for(
        self, gvr: GroupVersionResource, discovery: Discovery
    ) -> list[GroupVersionKind]:
        """Return kinds matching a possibly partial resource; without a version, every
        version of the group is searched."""
        if gvr.version:
            return self.cache_for_group_version(gvr.group_version()).kinds_for(gvr, discovery)

        matches: list[GroupVersionKind] = []
        for group_name, group in self.fetch_all_groups(discovery).items():
            if group_name != gvr.group:
                continue
            for version in group.versions:
                cached = self.cache_for_group_version(GroupVersion(group_name, version))
                matches.extend(cached.kinds_for(gvr, discovery))
        return matches

    def cache_for_group_version(self, gv: GroupVersion) -> CachedGroupVersion:
        """Return the cache entry for gv, creating it on first use."""
        with self._lock:
            cached = self._group_versions.get(gv)
            if cached is None:
                cached = CachedGroupVersion(gv)
                self._group_versions[gv] = cached
            return cached

    def find_rest_mapping(
        self, discovery: Discovery, gv: GroupVersion, kind: str
    ) -> RESTMapping | None:
        """Return the mapping for kind in gv, or None if the server has no such kind."""
        return self.cache_for_group_version(gv).find_rest_mapping(discovery, kind)