"""Default ordering of manifest objects for apply."""

from __future__ import annotations

import logging

from declpattern.manifest.objects import Object

_log = logging.getLogger(__name__)

_SCORES = {
    # CRDs first: they are slow, and instances of them follow soon.
    "apiextensions.k8s.io/CustomResourceDefinition": -1000,
    "/Namespace": 0,
    "/ServiceAccount": 1,
    "rbac.authorization.k8s.io/ClusterRole": 1,
    "rbac.authorization.k8s.io/ClusterRoleBinding": 2,
    "/ConfigMap": 100,
    "/Secret": 100,
    "extensions/Deployment": 1000,
    "apps/Deployment": 1000,
    "autoscaling/HorizontalPodAutoscaler": 1001,
    # Services late, after their pods have been started.
    "/Service": 10000,
}

_DEFAULT_SCORE = 1000


def default_object_order(obj: Object) -> int:
    """Score an object by its group and kind; lower scores are applied first."""
    key = f"{obj.group}/{obj.kind}"
    score = _SCORES.get(key)
    if score is None:
        _log.debug("unknown group / kind: group=%s kind=%s", obj.group, obj.kind)
        return _DEFAULT_SCORE
    return score