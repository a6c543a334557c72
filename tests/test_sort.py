import pytest

from declpattern.manifest.objects import Objects, new_object
from declpattern.sort import default_object_order


def make(api_version, kind, name="x"):
    return new_object({"apiVersion": api_version, "kind": kind, "metadata": {"name": name}})


@pytest.mark.parametrize(
    "api_version,kind,expected",
    [
        ("apiextensions.k8s.io/v1", "CustomResourceDefinition", -1000),
        ("v1", "Namespace", 0),
        ("v1", "ServiceAccount", 1),
        ("rbac.authorization.k8s.io/v1", "ClusterRole", 1),
        ("rbac.authorization.k8s.io/v1", "ClusterRoleBinding", 2),
        ("v1", "ConfigMap", 100),
        ("v1", "Secret", 100),
        ("extensions/v1beta1", "Deployment", 1000),
        ("apps/v1", "Deployment", 1000),
        ("autoscaling/v2", "HorizontalPodAutoscaler", 1001),
        ("v1", "Service", 10000),
    ],
)
def test_known_kinds(api_version, kind, expected):
    assert default_object_order(make(api_version, kind)) == expected


def test_unknown_kind_scores_like_deployment():
    unknown = make("example.com/v1", "Widget")
    assert default_object_order(unknown) == default_object_order(make("apps/v1", "Deployment"))


def test_sort_with_default_order():
    objects = Objects(
        items=[
            make("v1", "Service", "svc"),
            make("apps/v1", "Deployment", "dep"),
            make("v1", "Namespace", "ns"),
            make("apiextensions.k8s.io/v1", "CustomResourceDefinition", "crd"),
            make("v1", "ConfigMap", "cm"),
        ]
    )
    objects.sort(default_object_order)
    assert [o.name for o in objects.items] == ["crd", "ns", "cm", "dep", "svc"]


def test_scores_are_non_decreasing_after_sort():
    objects = Objects(
        items=[
            make("v1", "Secret"),
            make("rbac.authorization.k8s.io/v1", "ClusterRoleBinding"),
            make("v1", "ServiceAccount"),
            make("autoscaling/v1", "HorizontalPodAutoscaler"),
        ]
    )
    objects.sort(default_object_order)
    scores = [default_object_order(o) for o in objects.items]
    assert scores == sorted(scores)