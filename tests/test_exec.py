import base64
import os

import pytest
import yaml

from declpattern.applier.exec import ExecKubectl, KubectlError, build_kubeconfig
from declpattern.applier.types import Applier, ApplierOptions, RestConfig
from declpattern.manifest.objects import parse_objects

CONFIG_MAP_YAML = """
apiVersion: v1
kind: ConfigMap
metadata:
  name: foo
"""
CONFIG_MAP_JSON = '{"apiVersion":"v1","kind":"ConfigMap","metadata":{"name":"foo"}}'


class Collector:
    def __init__(self, error=None, on_run=None):
        self.error = error
        self.on_run = on_run
        self.calls = []

    def __call__(self, args, stdin):
        self.calls.append((list(args), stdin))
        if self.on_run is not None:
            self.on_run(args)
        if self.error is not None:
            raise self.error
        return "", ""


@pytest.mark.parametrize(
    "namespace,manifest,validate,args,err,expect_stdin,expect_args",
    [
        ("", CONFIG_MAP_YAML, False, [], None, CONFIG_MAP_JSON,
         ["kubectl", "apply", "--validate=false", "-f", "-"]),
        ("kube-system", CONFIG_MAP_YAML, False, [], None, CONFIG_MAP_JSON,
         ["kubectl", "apply", "-n", "kube-system", "--validate=false", "-f", "-"]),
        ("", CONFIG_MAP_YAML, True, [], None, CONFIG_MAP_JSON,
         ["kubectl", "apply", "--validate=true", "-f", "-"]),
        ("", "", False, [], OSError("error"), "",
         ["kubectl", "apply", "--validate=false", "-f", "-"]),
        ("kube-system", CONFIG_MAP_YAML, False,
         ["--prune=true", "--prune-whitelist=hello-world"], None, CONFIG_MAP_JSON,
         ["kubectl", "apply", "-n", "kube-system", "--validate=false", "--prune=true",
          "--prune-whitelist=hello-world", "-f", "-"]),
    ],
    ids=["manifest", "manifest with apply", "manifest with validate",
         "error propagation", "manifest with prune"],
)
def test_kubectl_apply(namespace, manifest, validate, args, err, expect_stdin, expect_args):
    collector = Collector(error=err)
    kubectl = ExecKubectl(runner=collector)
    objects = parse_objects(manifest)
    options = ApplierOptions(
        namespace=namespace, objects=objects.items, validate=validate, extra_args=args
    )

    if err is not None:
        with pytest.raises(KubectlError):
            kubectl.apply(options)
    else:
        kubectl.apply(options)

    assert len(collector.calls) == 1
    got_args, got_stdin = collector.calls[0]
    assert got_args == expect_args
    assert got_stdin.strip() == expect_stdin


def test_error_message_wraps_cause():
    kubectl = ExecKubectl(runner=Collector(error=OSError("boom")))
    with pytest.raises(KubectlError, match="error from running kubectl apply: boom"):
        kubectl.apply(ApplierOptions())


def test_force_flag_precedes_extra_args():
    collector = Collector()
    ExecKubectl(runner=collector).apply(ApplierOptions(force=True, extra_args=["--prune"]))
    assert collector.calls[0][0] == [
        "kubectl", "apply", "--validate=false", "--force", "--prune", "-f", "-"
    ]


def test_kubeconfig_written_for_run_and_removed():
    seen = {}

    def inspect(args):
        path = args[args.index("--kubeconfig") + 1]
        seen["path"] = path
        with open(path, encoding="utf-8") as fh:
            seen["config"] = yaml.safe_load(fh)

    collector = Collector(on_run=inspect)
    config = RestConfig(host="https://localhost:6443", bearer_token="token")
    ExecKubectl(runner=collector).apply(ApplierOptions(rest_config=config))

    assert collector.calls[0][0] == [
        "kubectl", "apply", "--validate=false", "--kubeconfig", seen["path"], "-f", "-"
    ]
    assert seen["config"]["clusters"][0]["cluster"]["server"] == "https://localhost:6443"
    assert seen["config"]["users"][0]["user"]["token"] == "token"
    assert not os.path.exists(seen["path"])


def test_kubeconfig_removed_on_failure():
    seen = {}

    def record(args):
        seen["path"] = args[args.index("--kubeconfig") + 1]

    collector = Collector(error=OSError("error"), on_run=record)
    with pytest.raises(KubectlError):
        ExecKubectl(runner=collector).apply(
            ApplierOptions(rest_config=RestConfig(host="https://localhost:6443"))
        )
    assert not os.path.exists(seen["path"])


def test_build_kubeconfig_round_trip():
    config = RestConfig(
        host="https://localhost:6443",
        bearer_token="token",
        cert_data=b"cert",
        key_data=b"key",
        ca_data=b"ca",
    )
    parsed = yaml.safe_load(build_kubeconfig(config))
    assert parsed["current-context"] == "target"
    assert parsed["contexts"][0] == {
        "name": "target",
        "context": {"cluster": "target", "user": "target"},
    }
    cluster = parsed["clusters"][0]["cluster"]
    assert base64.b64decode(cluster["certificate-authority-data"]) == b"ca"
    user = parsed["users"][0]["user"]
    assert base64.b64decode(user["client-certificate-data"]) == b"cert"
    assert base64.b64decode(user["client-key-data"]) == b"key"
    assert user["token"] == "token"


def test_build_kubeconfig_omits_empty_credentials():
    parsed = yaml.safe_load(build_kubeconfig(RestConfig(host="https://localhost:6443")))
    assert parsed["users"][0]["user"] == {}
    assert parsed["clusters"][0]["cluster"] == {"server": "https://localhost:6443"}


def test_exec_kubectl_is_an_applier():
    collector = Collector()
    applier = ExecKubectl(runner=collector)
    assert isinstance(applier, Applier)
    applier.apply(ApplierOptions(namespace="default", validate=True))
    assert collector.calls[0][0] == [
        "kubectl", "apply", "-n", "default", "--validate=true", "-f", "-"
    ]