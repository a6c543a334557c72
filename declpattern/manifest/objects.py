"""Parsed manifest objects and collections of them."""

from __future__ import annotations

import contextlib
import copy
import json as _jsonlib
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

import yaml

from declpattern.schema import GroupKind, GroupVersionKind, parse_api_version


class ManifestError(Exception):
    """A manifest could not be parsed or an object could not be changed."""


class _Loader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as plain strings."""


_Loader.yaml_implicit_resolvers = {
    key: [(tag, rx) for tag, rx in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for key, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

_MAP_TYPE = "map[string]interface{}"


def _go_type(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int64"
    if isinstance(value, float):
        return "float64"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "[]interface {}"
    if isinstance(value, dict):
        return _MAP_TYPE
    return type(value).__name__


def _go_repr(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _normalize_key(key: Any) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    return str(key)


def _normalize(value: Any) -> Any:
    if isinstance(value, dict):
        return {_normalize_key(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    return value


def _marshal(content: dict) -> bytes:
    text = _jsonlib.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in (
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("&", "\\u0026"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(char, escaped)
    return (text + "\n").encode("utf-8")


def _nested_field(obj: dict, fields: tuple[str, ...], path_prefix: str = "") -> tuple[Any, bool]:
    value: Any = obj
    for i, name in enumerate(fields):
        if not isinstance(value, dict):
            path = path_prefix + ".".join(fields[: i + 1])
            raise ManifestError(
                f"{path} accessor error: {_go_repr(value)} is of the type "
                f"{_go_type(value)}, expected {_MAP_TYPE}"
            )
        if name not in value:
            return None, False
        value = value[name]
    return value, True


def _set_nested(obj: dict, value: Any, fields: tuple[str, ...]) -> None:
    if not fields:
        raise ValueError("at least one field is required")
    current = obj
    for i, name in enumerate(fields[:-1]):
        if name in current:
            child = current[name]
            if not isinstance(child, dict):
                path = "." + ".".join(fields[: i + 1])
                raise ManifestError(f"value cannot be set because {path} is not a {_MAP_TYPE}")
            current = child
        else:
            child = {}
            current[name] = child
            current = child
    current[fields[-1]] = value


def _string_at(content: dict, *fields: str) -> str:
    try:
        value, found = _nested_field(content, fields)
    except ManifestError:
        return ""
    return value if found and isinstance(value, str) else ""


def _gvk(content: dict) -> GroupVersionKind:
    api_version = content.get("apiVersion")
    kind = content.get("kind")
    try:
        gv = parse_api_version(api_version if isinstance(api_version, str) else "")
    except ValueError:
        return GroupVersionKind()
    return gv.with_kind(kind if isinstance(kind, str) else "")


class Object:
    """One object from a manifest, with its identity cached and its JSON memoised."""

    def __init__(self, content: dict | None = None, *, raw_json: bytes | None = None):
        self.content: dict = content if content is not None else {}
        gvk = _gvk(self.content)
        self.group = gvk.group
        self.version = gvk.version
        self.kind = gvk.kind
        self._name = _string_at(self.content, "metadata", "name")
        self._namespace = _string_at(self.content, "metadata", "namespace")
        self._json = raw_json

    def __repr__(self) -> str:
        return f"Object(group={self.group!r}, kind={self.kind!r}, name={self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        try:
            self.set_nested_field(value, "metadata", "name")
        except ManifestError as exc:
            raise ManifestError(f"failed to set name: {exc}") from exc
        self._name = value

    @property
    def namespace(self) -> str:
        return self._namespace

    @namespace.setter
    def namespace(self, value: str) -> None:
        try:
            self.set_nested_field(value, "metadata", "namespace")
        except ManifestError as exc:
            raise ManifestError(f"failed to set namespace: {exc}") from exc
        self._namespace = value

    def _string_map_or_empty(self, *fields: str) -> dict[str, str]:
        try:
            return self.nested_string_map(*fields) or {}
        except ManifestError:
            return {}

    def add_labels(self, labels: dict[str, str]) -> None:
        """Merge labels into metadata.labels, overwriting existing keys."""
        merged = {**self._string_map_or_empty("metadata", "labels"), **labels}
        # A malformed metadata block is left untouched, as for any label setter.
        with contextlib.suppress(ManifestError):
            self.set_nested_string_map(merged, "metadata", "labels")
        self._json = None

    def add_annotations(self, annotations: dict[str, str]) -> None:
        """Merge annotations into metadata.annotations, overwriting existing keys."""
        merged = {**self._string_map_or_empty("metadata", "annotations"), **annotations}
        with contextlib.suppress(ManifestError):
            self.set_nested_string_map(merged, "metadata", "annotations")
        self._json = None

    def set_nested_string_map(self, value: dict[str, str], *fields: str) -> None:
        self._json = None
        _set_nested(self.content, dict(value), fields)

    def nested_string_map(self, *fields: str) -> dict[str, str] | None:
        """Return the string map at the path, or None if absent."""
        value, found = _nested_field(self.content, fields, path_prefix=".")
        if not found:
            return None
        path = "." + ".".join(fields)
        if not isinstance(value, dict):
            raise ManifestError(
                f"{path} accessor error: {_go_repr(value)} is of the type "
                f"{_go_type(value)}, expected {_MAP_TYPE}"
            )
        for item in value.values():
            if not isinstance(item, str):
                raise ManifestError(
                    f"{path} accessor error: contains non-string value in the map: "
                    f"{_go_repr(item)} is of the type {_go_type(item)}, expected string"
                )
        return dict(value)

    def mutate_containers(self, fn: Callable[[dict], Any]) -> None:
        """Call fn on every container and then every init container of the pod template."""
        try:
            containers, found = _nested_field(
                self.content, ("spec", "template", "spec", "containers")
            )
        except ManifestError as exc:
            raise ManifestError(f"error reading containers: {exc}") from exc
        if not found:
            raise ManifestError("containers not found")
        if not isinstance(containers, list):
            raise ManifestError("containers was not a list")

        try:
            init_containers, found = _nested_field(
                self.content, ("spec", "template", "spec", "initContainers")
            )
        except ManifestError as exc:
            raise ManifestError(f"error reading init containers: {exc}") from exc
        all_containers = list(containers)
        if found:
            if not isinstance(init_containers, list):
                raise ManifestError("init containers was not a list")
            all_containers.extend(init_containers)

        for container in all_containers:
            if not isinstance(container, dict):
                raise ManifestError("container was not an object")
            fn(container)
        self._json = None

    def mutate_pod_spec(self, fn: Callable[[dict], Any]) -> None:
        """Call fn on the pod template's spec."""
        try:
            pod_spec, found = _nested_field(self.content, ("spec", "template", "spec"))
        except ManifestError as exc:
            raise ManifestError(f"error reading containers: {exc}") from exc
        if not found:
            raise ManifestError("pod spec not found")
        if not isinstance(pod_spec, dict):
            raise ManifestError("pod spec was not an object")
        fn(pod_spec)
        self._json = None

    def set_nested_field(self, value: Any, *fields: str) -> None:
        self._json = None
        _set_nested(self.content, copy.deepcopy(value), fields)

    def set_nested_slice(self, value: list, *fields: str) -> None:
        self._json = None
        _set_nested(self.content, copy.deepcopy(list(value)), fields)

    def set_nested_field_no_copy(self, value: Any, *fields: str) -> None:
        if not fields:
            raise ValueError("at least one field is required")
        current = self.content
        for i, name in enumerate(fields[:-1]):
            if name in current:
                child = current[name]
                if not isinstance(child, dict):
                    path = "[" + " ".join(fields[: i + 1]) + "]"
                    raise ManifestError(
                        f"value cannot be set because {path} is not a {_MAP_TYPE}"
                    )
                current = child
            else:
                child = {}
                current[name] = child
                current = child
        current[fields[-1]] = value
        self._json = None

    def json(self) -> bytes:
        """Return the object's JSON encoding, computing it once per change."""
        if self._json is None:
            self._json = _marshal(self.content)
        return self._json

    def group_kind(self) -> GroupKind:
        return _gvk(self.content).group_kind()

    def group_version_kind(self) -> GroupVersionKind:
        return _gvk(self.content)

    def namespaced_name(self) -> tuple[str, str]:
        """Return (namespace, name) as currently recorded on the object."""
        return self._namespace, self._name


@dataclass
class Objects:
    """A collection of objects plus documents that were not objects."""

    items: list[Object] = field(default_factory=list)
    blobs: list[bytes] = field(default_factory=list)
    path: str = ""

    def json_manifest(self) -> str:
        parts = []
        for item in self.items:
            try:
                parts.append(item.json().decode("utf-8"))
            except (TypeError, ValueError) as exc:
                raise ManifestError(f"error building json: {exc}") from exc
        return "\n\n".join(parts)

    def sort(self, score: Callable[[Object], int]) -> None:
        """Order items by score, then group, kind and name."""
        self.items.sort(key=lambda o: (score(o), o.group, o.kind, o.name))


def parse_json_to_object(data: bytes | str) -> Object:
    """Decode one JSON object into an Object."""
    try:
        content = _jsonlib.loads(data)
    except (ValueError, TypeError) as exc:
        raise ManifestError(f"error parsing json into unstructured object: {exc}") from exc
    if not isinstance(content, dict):
        raise ManifestError("error parsing json into unstructured object: not an object")
    kind = content.get("kind")
    if not isinstance(kind, str) or not kind:
        raise ManifestError(
            "error parsing json into unstructured object: Object 'Kind' is missing"
        )
    if isinstance(content.get("items"), list):
        raise ManifestError("parsed unexpected type: list")
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    return Object(content, raw_json=raw)


def _split_documents(text: str) -> Iterator[str]:
    parts = text.split("\n")
    lines = [p + "\n" for p in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    buffer: list[str] = []
    for line in lines:
        if line.startswith("---"):
            rest = line[3:].strip()
            if rest and not rest.startswith("#"):
                raise ManifestError(
                    f"invalid YAML doc: invalid yaml document separator: {rest}"
                )
            if buffer:
                yield "".join(buffer)
                buffer = []
            continue
        buffer.append(line)
    if buffer:
        yield "".join(buffer)


def _decode_document(raw: str) -> dict | None:
    if not raw:
        return None
    try:
        data = yaml.load(raw, Loader=_Loader)
    except yaml.YAMLError as exc:
        raise ManifestError(str(exc)) from exc
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ManifestError("document is not an object")
    data = _normalize(data)
    kind = data.get("kind")
    if not isinstance(kind, str) or not kind:
        raise ManifestError("Object 'Kind' is missing")
    return data


def parse_objects(manifest: str) -> Objects:
    """Parse a multi-document YAML manifest; undecodable documents become blobs."""
    objects = Objects()
    for raw in _split_documents(manifest):
        raw = raw.strip()
        try:
            content = _decode_document(raw)
        except ManifestError:
            blob = raw[4:] if raw.startswith("---\n") else raw
            objects.blobs.append((blob + "\n").encode("utf-8"))
            continue
        if not content:
            continue
        objects.items.append(new_object(content))
    return objects


def new_object(content: dict | None) -> Object:
    """Wrap an unstructured object dictionary."""
    return Object(content)