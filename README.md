# declpattern

Building blocks for operators that manage Kubernetes add-ons declaratively.
The package reads YAML manifests into objects, edits and patches them, puts
them in a sensible apply order and hands them to `kubectl` for applying.
Around that it offers a REST mapper that caches discovery results, a dynamic
watch that turns changes to child objects into events for a parent object,
and small helpers for cluster DNS settings and status reporting.

## Installation

```
pip install declpattern
```

Python 3.10 or later is required; the only dependency is PyYAML. Applying
manifests with `ExecKubectl` needs `kubectl` on the `PATH`.

## Manifests (`declpattern.manifest.objects`)

`parse_objects` splits a multi-document YAML manifest into `Object`s held in
an `Objects` collection. Documents that cannot be read as Kubernetes objects
(a kustomization, for example) are kept in `Objects.blobs` as bytes; empty
and `null` documents are skipped. A malformed `---` separator raises
`ManifestError`.

```python
from declpattern.manifest.objects import parse_objects
from declpattern.sort import default_object_order

objects = parse_objects("""
apiVersion: v1
kind: Service
metadata:
  name: web
---
apiVersion: v1
kind: ServiceAccount
metadata:
  name: web
""")

for obj in objects.items:
    obj.add_labels({"app": "web"})

objects.sort(default_object_order)   # the service account comes before the service
print(objects.json_manifest())
```

An `Object` exposes `group`, `version`, `kind`, `name` and `namespace`, and
its raw dictionary as `content`. It can be edited in place with
`add_labels`, `add_annotations`, `set_nested_field`, `set_nested_slice`,
`set_nested_field_no_copy`, `set_nested_string_map`, `mutate_containers`
(containers, then init containers, of the pod template) and
`mutate_pod_spec`; every edit discards the cached JSON so that `json()`
reflects it. Assigning to `name` or `namespace` updates the metadata too.
`parse_json_to_object` reads one JSON document; `new_object` wraps a plain
dictionary.

### Ordering (`declpattern.sort`)

`default_object_order` scores an object by group and kind: custom resource
definitions first, then namespaces, service accounts and cluster roles,
cluster role bindings, config maps and secrets, deployments, horizontal pod
autoscalers, and services last; unknown kinds score like deployments.
`Objects.sort` orders by a score, then by group, kind and name, so the
result is deterministic.

### Patches (`declpattern.manifest.patch`)

`patch_objects(objects, patches)` applies each patch (an `Object` or a
plain mapping) to every object with the same group, version, kind, name and
namespace, using JSON merge-patch semantics. `merge_patch(base, patch)` is
available on its own and leaves `base` unchanged.

## Applying (`declpattern.applier`)

```python
from declpattern.applier.exec import ExecKubectl
from declpattern.applier.types import ApplierOptions

applier = ExecKubectl()
applier.apply(ApplierOptions(objects=objects.items, namespace="kube-system"))
```

`ExecKubectl` runs `kubectl apply` with `-n` for a namespace,
`--validate=true|false`, `--force` when `force` is set, any `extra_args`,
and `-f -`, feeding the manifest as JSON on standard input. When a
`RestConfig` is given, a temporary kubeconfig is written with
`build_kubeconfig` and removed afterwards. A failing run raises
`KubectlError`. A different runner, a callable taking the argument list and
the standard input and returning `(stdout, stderr)`, can be passed to the
constructor. Other appliers implement the `Applier` base class.

## REST mapping (`declpattern.restmapper`)

`ControllerRESTMapper` maps group/kind to resources using a `Discovery`
implementation that you supply, and caches what it learns in memory:

```python
from declpattern.restmapper.caching import APIGroup, APIResource, APIResourceList, Discovery
from declpattern.restmapper.controller import ControllerRESTMapper
from declpattern.schema import GroupKind


class StaticDiscovery(Discovery):
    def server_groups(self):
        return [APIGroup(name="", versions=["v1"], preferred_version="v1")]

    def server_resources_for_group_version(self, group_version):
        return APIResourceList(group_version, [APIResource("namespaces", "Namespace")])


mapper = ControllerRESTMapper(StaticDiscovery())
mapping = mapper.rest_mapping(GroupKind(group="", kind="Namespace"), "v1")
print(mapping.resource, mapping.scope)   # /v1, Resource=namespaces RESTScope.ROOT
```

Without versions, `rest_mappings` searches the group's preferred version
first and then its other versions. Lookups that find nothing raise
`NoKindMatchError` or `NoResourceMatchError`; `kind_for` raises
`LookupError` for no match and `ValueError` for several. `kinds_for`,
`resource_for`, `resources_for` and `resource_singularizer` are deliberately
unsupported and raise `RuntimeError`. The identifier types (`GroupVersion`,
`GroupKind`, `GroupVersionKind`, `GroupVersionResource`, `RESTMapping`,
`RESTScope`) live in `declpattern.schema`.

## Watches (`declpattern.watch.dynamic`)

`new_dynamic_watch(rest_mapper, client)` returns a `DynamicWatch` and the
queue its `GenericEvent`s arrive on. `DynamicWatch.add(trigger, options,
filter_namespace, target)` watches objects of the `trigger` kind in a
background thread and returns once the first watch is open; each change is
put on the queue as an event naming `target`. Repeated resource versions
are filtered out, deletions are always delivered, and a closed watch is
resumed after `watch_delay` seconds (30 by default). The `client` must
offer `resource(gvr)`, whose result has `namespace(ns)` and
`watch(ListOptions)` returning an iterable of `WatchEvent`s.

## Status and DNS

`StatusBuilder` (in `declpattern.status`) combines optional reconciled,
preflight, version-check and build-status parts; `StatusInfo` and
`KnownErrorCode` carry the outcome of a reconcile.

In `declpattern.dns`, `find_dns_cluster_ip(client)` takes the `kubernetes`
Service in `default` (via `client.get_service(namespace, name)`) and adds 9
to its cluster IP's last byte, falling back to `10.96.0.10` when the Service
is not found. `get_dns_domain(resolver=None)` derives the cluster domain from
the canonical name of `kubernetes.default.svc`, falling back to
`cluster.local`.

## What this package does not do

There is no command-line program, no reconciler or controller loop and no
Kubernetes API client: discovery, watch and service clients are supplied by
the caller. Applying is done only through `kubectl`; there is no built-in
server-side or in-process apply, and no kustomize support.

## Development

```
pip install -e ".[test]"
pytest
```