"""Watches on arbitrary kinds that raise events for an owning object."""

from __future__ import annotations

import dataclasses
import logging
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from declpattern.schema import GroupVersionKind

_log = logging.getLogger(__name__)

# Seconds between a watch being dropped and attempting to resume it.
WATCH_DELAY = 30.0


class EventType(str, Enum):
    """The kinds of notification a watch stream delivers."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    ERROR = "ERROR"


@dataclass
class WatchEvent:
    """One notification from a watch stream."""

    type: EventType
    object: Any


@dataclass
class ListOptions:
    """Filters for listing and watching objects."""

    label_selector: str = ""
    field_selector: str = ""
    resource_version: str = ""
    allow_watch_bookmarks: bool = False


@dataclass
class GenericEvent:
    """An event on a watched object, addressed to the object that should be reconciled."""

    object: Any
    target: Any


def _metadata(obj: Any) -> dict:
    if isinstance(obj, dict):
        meta = obj.get("metadata")
        if isinstance(meta, dict):
            return meta
    return {}


@dataclass
class DynamicKindWatch:
    """A watch on one kind, optionally restricted to one namespace."""

    gvk: GroupVersionKind
    filter_namespace: str
    filter_options: ListOptions
    resource: Any
    events: "queue.Queue[GenericEvent]"
    # Last resource version reported per (namespace, name), so rewatches do not repeat events.
    last_rv: dict = field(default_factory=dict)

    def watch_until_closed(self, event_target: Any, started: Optional[threading.Event] = None) -> None:
        """Watch until the stream ends, forwarding changes as events for event_target.

        started, if given, is set once the watch has been opened or has failed to open.
        """
        # Bookmarks are unused but help keep the connection healthy.
        options = dataclasses.replace(self.filter_options, allow_watch_bookmarks=True)
        context = (
            f"kind={self.gvk} namespace={self.filter_namespace} labels={options.label_selector}"
        )

        try:
            stream = self.resource.watch(options)
        except Exception as exc:
            _log.error("failed to add watch to dynamic client: %s (%s)", exc, context)
            return
        finally:
            if started is not None:
                started.set()

        _log.info("watch began: %s", context)
        try:
            for event in stream:
                if event.type is EventType.BOOKMARK:
                    continue
                if event.type is EventType.ERROR:
                    _log.error("error during watch: unexpected error from watch: %s", event.object)
                    return

                meta = _metadata(event.object)
                key = (meta.get("namespace", ""), meta.get("name", ""))
                rv = meta.get("resourceVersion", "")

                if event.type is EventType.DELETED:
                    # Deletions are always sent; forgetting the key bounds the cache.
                    self.last_rv.pop(key, None)
                elif event.type in (EventType.ADDED, EventType.MODIFIED):
                    if self.last_rv.get(key, None) == rv and key in self.last_rv:
                        continue
                    self.last_rv[key] = rv

                _log.info(
                    "broadcasting event: type=%s kind=%s name=%s namespace=%s",
                    event.type.value,
                    self.gvk,
                    key[1],
                    key[0],
                )
                self.events.put(GenericEvent(object=event.object, target=event_target))
        finally:
            stop = getattr(stream, "stop", None)
            if callable(stop):
                stop()
        _log.info("watch closed: %s", context)


class DynamicWatch:
    """Creates watches on arbitrary kinds and funnels their events into one queue."""

    def __init__(self, rest_mapper: Any, client: Any, watch_delay: float = WATCH_DELAY):
        self.rest_mapper = rest_mapper
        self.client = client
        self.watch_delay = watch_delay
        self.events: "queue.Queue[GenericEvent]" = queue.Queue()

    def _new_kind_watch(
        self, gvk: GroupVersionKind, options: ListOptions, filter_namespace: str
    ) -> DynamicKindWatch:
        mapping = self.rest_mapper.rest_mapping(gvk.group_kind(), gvk.version)
        resource = self.client.resource(mapping.resource)
        if filter_namespace:
            resource = resource.namespace(filter_namespace)
        return DynamicKindWatch(
            gvk=gvk,
            filter_namespace=filter_namespace,
            filter_options=options,
            resource=resource,
            events=self.events,
        )

    def add(
        self,
        trigger: GroupVersionKind,
        options: ListOptions,
        filter_namespace: str,
        target: Any,
    ) -> None:
        """Watch trigger objects matching options, raising events on target.

        Returns once the first watch has been opened; the watch is resumed after
        watch_delay whenever it closes.
        """
        try:
            kind_watch = self._new_kind_watch(trigger, options, filter_namespace)
        except Exception as exc:
            raise RuntimeError(f"creating client for ({trigger}): {exc}") from exc

        started = threading.Event()

        def run() -> None:
            first: Optional[threading.Event] = started
            while True:
                kind_watch.watch_until_closed(target, first)
                first = None
                threading.Event().wait(self.watch_delay)

        threading.Thread(target=run, name=f"watch-{trigger}", daemon=True).start()
        started.wait()


def new_dynamic_watch(
    rest_mapper: Any, client: Any
) -> "tuple[DynamicWatch, queue.Queue[GenericEvent]]":
    """Build a DynamicWatch and return it with the queue its events arrive on."""
    watch = DynamicWatch(rest_mapper, client)
    return watch, watch.events