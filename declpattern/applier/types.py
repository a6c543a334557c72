"""Options shared by appliers and the applier interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from declpattern.manifest.objects import Object


@dataclass
class RestConfig:
    """Connection details for a cluster's API server."""

    host: str = ""
    bearer_token: str = ""
    cert_data: bytes = b""
    key_data: bytes = b""
    ca_data: bytes = b""


@dataclass
class ApplierOptions:
    """Everything an applier needs to apply a set of objects."""

    objects: list[Object] = field(default_factory=list)
    rest_config: RestConfig | None = None
    rest_mapper: Any = None
    namespace: str = ""
    validate: bool = False
    cascading_strategy: str = ""
    prune_whitelist: list[str] = field(default_factory=list)
    prune: bool = False
    # For server-side apply this takes ownership of fields held by other managers.
    force: bool = False
    # Additional kubectl arguments; prefer the explicit options above.
    extra_args: list[str] = field(default_factory=list)
    parent_ref: Any = None
    client: Any = None


class Applier(ABC):
    """Something that can apply objects to a cluster."""

    @abstractmethod
    def apply(self, options: ApplierOptions) -> None:
        """Apply options.objects, raising on failure."""