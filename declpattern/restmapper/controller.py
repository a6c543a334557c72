"""A REST mapper tuned for controllers: cached, and limited to kind-to-resource lookups."""

from __future__ import annotations

from declpattern.restmapper.caching import Discovery, DiscoveryCache
from declpattern.schema import (
    GroupKind,
    GroupVersion,
    GroupVersionKind,
    GroupVersionResource,
    NoKindMatchError,
    NoResourceMatchError,
    RESTMapping,
)


class _UnsupportedOperationError(RuntimeError):
    """Raised for lookups that the controller mapper deliberately does not offer."""

    def __init__(self, operation: str, subject: object):
        super().__init__(f"ControllerRESTMapper does not support {operation} operation")
        self.operation = operation
        self.subject = subject


class ControllerRESTMapper:
    """Maps kinds to resources, caching discovery results in memory.

    Controllers mostly need group/version/kind to resource lookups, so short names,
    categories and other reverse lookups are not supported.
    """

    def __init__(self, discovery: Discovery):
        self._discovery = discovery
        self._cache = DiscoveryCache()

    def kind_for(self, resource: GroupVersionResource) -> GroupVersionKind:
        """Return the single kind for a partial resource."""
        kinds = self._cache.kinds_for(resource, self._discovery)
        if not kinds:
            raise LookupError(f"found no matching kinds for {resource}")
        if len(kinds) > 1:
            listed = " ".join(str(k) for k in kinds)
            raise ValueError(f"found multiple kinds for {resource}: [{listed}]")
        return kinds[0]

    def kinds_for(self, resource: GroupVersionResource) -> list[GroupVersionKind]:
        """Reject the lookup: listing candidate kinds is not supported."""
        raise _UnsupportedOperationError("KindsFor", resource)

    def resource_for(self, resource: GroupVersionResource) -> GroupVersionResource:
        """Reject the lookup: resolving a partial resource is not supported."""
        raise _UnsupportedOperationError("ResourceFor", resource)

    def resources_for(self, resource: GroupVersionResource) -> list[GroupVersionResource]:
        """Reject the lookup: listing candidate resources is not supported."""
        raise _UnsupportedOperationError("ResourcesFor", resource)

    def rest_mapping(self, group_kind: GroupKind, *versions: str) -> RESTMapping:
        """Return the preferred mapping for a group and kind."""
        mappings = self.rest_mappings(group_kind, *versions)
        if mappings:
            return mappings[0]
        raise NoKindMatchError(group_kind, versions)

    def rest_mappings(self, group_kind: GroupKind, *versions: str) -> list[RESTMapping]:
        """Return the mappings for a group and kind, preferred version first.

        Without versions, every version of the group is searched.
        """
        not_found = NoResourceMatchError(
            GroupVersionResource(group=group_kind.group, resource=group_kind.kind)
        )

        if versions:
            search = list(versions)
        else:
            group = self._cache.fetch_all_groups(self._discovery).get(group_kind.group)
            if group is None:
                raise not_found
            search = [group.preferred_version] if group.preferred_version else []
            search += [v for v in group.versions if v != group.preferred_version]

        mappings = []
        for version in search:
            mapping = self._cache.find_rest_mapping(
                self._discovery, GroupVersion(group_kind.group, version), group_kind.kind
            )
            if mapping is not None:
                mappings.append(mapping)

        if not mappings:
            raise not_found
        return mappings

    def resource_singularizer(self, resource: str) -> str:
        """Reject the lookup: singular resource names are not supported."""
        raise _UnsupportedOperationError("ResourceSingularizer", resource)