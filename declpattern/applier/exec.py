"""Applier that runs kubectl apply as a child process."""

from __future__ import annotations

import base64
import logging
import os
import subprocess
import tempfile
from typing import Callable

import yaml

from declpattern.applier.types import Applier, ApplierOptions, RestConfig
from declpattern.manifest.objects import Objects

_log = logging.getLogger(__name__)

Runner = Callable[[list[str], str], "tuple[str, str]"]


class KubectlError(Exception):
    """kubectl could not be run or reported a failure."""


def _run_command(args: list[str], stdin: str) -> tuple[str, str]:
    completed = subprocess.run(args, input=stdin, capture_output=True, text=True, check=True)
    return completed.stdout, completed.stderr


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def build_kubeconfig(rest_config: RestConfig) -> bytes:
    """Render a kubeconfig with a single "target" context for the given connection."""
    cluster: dict[str, str] = {}
    if rest_config.ca_data:
        cluster["certificate-authority-data"] = _b64(rest_config.ca_data)
    if rest_config.host:
        cluster["server"] = rest_config.host

    user: dict[str, str] = {}
    if rest_config.cert_data:
        user["client-certificate-data"] = _b64(rest_config.cert_data)
    if rest_config.key_data:
        user["client-key-data"] = _b64(rest_config.key_data)
    if rest_config.bearer_token:
        user["token"] = rest_config.bearer_token

    config = {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{"name": "target", "cluster": cluster}],
        "contexts": [{"name": "target", "context": {"cluster": "target", "user": "target"}}],
        "current-context": "target",
        "preferences": {},
        "users": [{"name": "target", "user": user}],
    }
    try:
        text = yaml.safe_dump(config, default_flow_style=False, sort_keys=True)
    except yaml.YAMLError as exc:
        raise KubectlError(f"error building kubeconfig: {exc}") from exc
    return text.encode("utf-8")


class ExecKubectl(Applier):
    """Applies objects by piping a JSON manifest into ``kubectl apply -f -``."""

    def __init__(self, runner: Runner | None = None):
        self._runner: Runner = runner if runner is not None else _run_command

    def apply(self, options: ApplierOptions) -> None:
        manifest = Objects(items=list(options.objects)).json_manifest()
        _log.info("applying manifest")

        args = ["kubectl", "apply"]
        if options.namespace:
            args += ["-n", options.namespace]
        # Skipping validation avoids downloading the OpenAPI schema.
        args.append(f"--validate={'true' if options.validate else 'false'}")

        kubeconfig_path = None
        try:
            if options.rest_config is not None:
                kubeconfig_path = self._write_kubeconfig(options.rest_config)
                args += ["--kubeconfig", kubeconfig_path]

            if options.force:
                args.append("--force")
            args += options.extra_args
            args += ["-f", "-"]

            _log.info("executing kubectl with args %s", " ".join(args[1:]))
            try:
                stdout, stderr = self._runner(args, manifest)
            except Exception as exc:
                out = getattr(exc, "stdout", "") or ""
                err = getattr(exc, "stderr", "") or ""
                _log.error(
                    "error from running kubectl apply: %s stdout=%s stderr=%s", exc, out, err
                )
                _log.info("manifest:\n%s", manifest)
                raise KubectlError(f"error from running kubectl apply: {exc}") from exc
            _log.debug("ran kubectl apply: stdout=%s stderr=%s", stdout, stderr)
        finally:
            if kubeconfig_path is not None:
                try:
                    os.remove(kubeconfig_path)
                except OSError as exc:
                    _log.error(
                        "error removing kubeconfig temp file %s: %s", kubeconfig_path, exc
                    )

    @staticmethod
    def _write_kubeconfig(rest_config: RestConfig) -> str:
        content = build_kubeconfig(rest_config)
        try:
            handle = tempfile.NamedTemporaryFile(prefix="kubeconfig", delete=False)
        except OSError as exc:
            raise KubectlError(f"error creating temp file: {exc}") from exc
        try:
            with handle:
                handle.write(content)
        except OSError as exc:
            os.remove(handle.name)
            raise KubectlError(f"error writing kubeconfig: {exc}") from exc
        return handle.name