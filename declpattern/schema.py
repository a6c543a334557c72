"""Identifiers for API groups, versions, kinds and resources, and mapping errors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with one of its versions."""

    group: str = ""
    version: str = ""

    def with_kind(self, kind: str) -> GroupVersionKind:
        return GroupVersionKind(self.group, self.version, kind)

    def with_resource(self, resource: str) -> GroupVersionResource:
        return GroupVersionResource(self.group, self.version, resource)

    def __str__(self) -> str:
        if self.group:
            return f"{self.group}/{self.version}"
        return self.version


@dataclass(frozen=True)
class GroupKind:
    """A kind within an API group, without a version."""

    group: str = ""
    kind: str = ""

    def __str__(self) -> str:
        if not self.group:
            return self.kind
        return f"{self.kind}.{self.group}"


@dataclass(frozen=True)
class GroupVersionKind:
    """A fully qualified kind."""

    group: str = ""
    version: str = ""
    kind: str = ""

    def group_kind(self) -> GroupKind:
        return GroupKind(self.group, self.kind)

    def group_version(self) -> GroupVersion:
        return GroupVersion(self.group, self.version)

    def __str__(self) -> str:
        return f"{self.group}/{self.version}, Kind={self.kind}"


@dataclass(frozen=True)
class GroupVersionResource:
    """A fully qualified resource (the plural REST path segment)."""

    group: str = ""
    version: str = ""
    resource: str = ""

    def group_version(self) -> GroupVersion:
        return GroupVersion(self.group, self.version)

    def __str__(self) -> str:
        return f"{self.group}/{self.version}, Resource={self.resource}"


class RESTScope(Enum):
    """Whether a resource lives inside a namespace or at cluster scope."""

    NAMESPACE = "namespace"
    ROOT = "root"


@dataclass(frozen=True)
class RESTMapping:
    """How a kind maps onto a REST resource."""

    resource: GroupVersionResource
    group_version_kind: GroupVersionKind
    scope: RESTScope


class NotFoundError(Exception):
    """The requested object or resource does not exist on the server."""


class NoKindMatchError(LookupError):
    """No resource is known for a group and kind in the searched versions."""

    def __init__(self, group_kind: GroupKind, searched_versions: Iterable[str] = ()):
        self.group_kind = group_kind
        self.searched_versions = tuple(searched_versions)
        super().__init__(self._message())

    def _message(self) -> str:
        searched = sorted(
            {str(GroupVersion(self.group_kind.group, v)) for v in self.searched_versions}
        )
        kind = self.group_kind.kind
        if not searched:
            return f'no matches for kind "{kind}" in group "{self.group_kind.group}"'
        if len(searched) == 1:
            return f'no matches for kind "{kind}" in version "{searched[0]}"'
        quoted = " ".join(f'"{v}"' for v in searched)
        return f'no matches for kind "{kind}" in versions [{quoted}]'


class NoResourceMatchError(LookupError):
    """No resource matches a partially specified resource."""

    def __init__(self, partial_resource: GroupVersionResource):
        self.partial_resource = partial_resource
        super().__init__(f"no matches for {partial_resource}")


def parse_api_version(api_version: str) -> GroupVersion:
    """Split an apiVersion string such as ``apps/v1`` or ``v1``."""
    if not api_version or api_version == "/":
        return GroupVersion()
    parts = api_version.split("/")
    if len(parts) == 1:
        return GroupVersion("", parts[0])
    if len(parts) == 2:
        return GroupVersion(parts[0], parts[1])
    raise ValueError(f"unexpected GroupVersion string: {api_version}")