"""Status reporting hooks for declarative objects."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from declpattern.manifest.objects import Objects
from declpattern.schema import GroupVersionKind

# Reads an applied object back from the cluster: (gvk, (namespace, name)) -> object.
LiveObjectReader = Callable[[GroupVersionKind, "tuple[str, str]"], dict]


class KnownErrorCode(str, Enum):
    """Failures the reconciler recognises and reports specifically."""

    APPLY_FAILED = "FailedToApply"
    VERSION_CHECK_FAILED = "VersionCheckFailed"


@dataclass
class StatusInfo:
    """What a reconcile run produced, handed to status builders."""

    subject: Any = None
    # The desired state of the objects that were applied, or that were to be.
    manifest: Optional[Objects] = None
    live_objects: Optional[LiveObjectReader] = None
    known_error: Optional[KnownErrorCode] = None
    err: Optional[BaseException] = None


class _Reconciled(Protocol):
    def reconciled(self, subject: Any, manifest: Optional[Objects], err: Optional[BaseException]) -> None:
        ...


class _Preflight(Protocol):
    def preflight(self, subject: Any) -> None:
        ...


class _VersionCheck(Protocol):
    def version_check(self, subject: Any, objects: Objects) -> bool:
        ...


class _BuildStatus(Protocol):
    def build_status(self, status_info: StatusInfo) -> None:
        ...


@dataclass
class StatusBuilder:
    """A status implementation assembled from optional parts.

    Each method delegates to its part when one is set; otherwise it does nothing
    (and a version check passes). Parts report failure by raising.
    """

    # Deprecated in favour of build_status_impl.
    reconciled_impl: Optional[_Reconciled] = None
    preflight_impl: Optional[_Preflight] = None
    version_check_impl: Optional[_VersionCheck] = None
    build_status_impl: Optional[_BuildStatus] = None

    def reconciled(self, subject: Any, manifest: Optional[Objects], err: Optional[BaseException]) -> None:
        """Report that a reconciliation has happened, with its outcome."""
        if self.reconciled_impl is not None:
            self.reconciled_impl.reconciled(subject, manifest, err)

    def preflight(self, subject: Any) -> None:
        """Raise if the world is not ready for the subject to be reconciled."""
        if self.preflight_impl is not None:
            self.preflight_impl.preflight(subject)

    def version_check(self, subject: Any, objects: Objects) -> bool:
        """Return whether the operator supports the versions the manifest asks for."""
        if self.version_check_impl is not None:
            return self.version_check_impl.version_check(subject, objects)
        return True

    def build_status(self, status_info: StatusInfo) -> None:
        """Compute the subject's new status after a reconcile."""
        if self.build_status_impl is not None:
            self.build_status_impl.build_status(status_info)