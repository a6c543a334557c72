import pytest

from declpattern.manifest.objects import Objects, parse_objects
from declpattern.status import KnownErrorCode, StatusBuilder, StatusInfo


class Recorder:
    def __init__(self, verdict=True, error=None):
        self.calls = []
        self.verdict = verdict
        self.error = error

    def _maybe_raise(self):
        if self.error is not None:
            raise self.error

    def reconciled(self, subject, manifest, err):
        self.calls.append(("reconciled", subject, manifest, err))
        self._maybe_raise()

    def preflight(self, subject):
        self.calls.append(("preflight", subject))
        self._maybe_raise()

    def version_check(self, subject, objects):
        self.calls.append(("version_check", subject, objects))
        self._maybe_raise()
        return self.verdict

    def build_status(self, status_info):
        self.calls.append(("build_status", status_info))
        self._maybe_raise()
        status_info.known_error = KnownErrorCode.APPLY_FAILED


def test_known_error_codes():
    assert KnownErrorCode.APPLY_FAILED.value == "FailedToApply"
    assert KnownErrorCode.VERSION_CHECK_FAILED.value == "VersionCheckFailed"
    assert KnownErrorCode("FailedToApply") is KnownErrorCode.APPLY_FAILED


def test_status_info_defaults():
    info = StatusInfo(subject="addon")
    assert info.subject == "addon"
    assert info.manifest is None
    assert info.known_error is None
    assert info.err is None
    assert info.live_objects is None


def test_empty_builder_passes_version_check():
    builder = StatusBuilder()
    assert builder.version_check("addon", Objects()) is True
    assert builder.preflight("addon") is None
    assert builder.reconciled("addon", None, None) is None
    info = StatusInfo()
    builder.build_status(info)
    assert info.known_error is None


def test_builder_delegates_each_part():
    recorder = Recorder(verdict=False)
    builder = StatusBuilder(
        reconciled_impl=recorder,
        preflight_impl=recorder,
        version_check_impl=recorder,
        build_status_impl=recorder,
    )
    objects = parse_objects("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: foo\n")
    err = RuntimeError("boom")

    builder.preflight("addon")
    assert builder.version_check("addon", objects) is False
    builder.reconciled("addon", objects, err)
    info = StatusInfo(subject="addon", manifest=objects)
    builder.build_status(info)

    assert [call[0] for call in recorder.calls] == [
        "preflight",
        "version_check",
        "reconciled",
        "build_status",
    ]
    assert recorder.calls[1][2] is objects
    assert recorder.calls[2][3] is err
    assert recorder.calls[3][1] is info
    assert info.known_error is KnownErrorCode.APPLY_FAILED


def test_preflight_failure_propagates():
    builder = StatusBuilder(preflight_impl=Recorder(error=ValueError("not ready")))
    with pytest.raises(ValueError, match="not ready"):
        builder.preflight("addon")


def test_version_check_failure_propagates():
    builder = StatusBuilder(version_check_impl=Recorder(error=RuntimeError("too new")))
    with pytest.raises(RuntimeError, match="too new"):
        builder.version_check("addon", Objects())


def test_only_configured_parts_are_used():
    recorder = Recorder()
    builder = StatusBuilder(build_status_impl=recorder)
    builder.preflight("addon")
    builder.reconciled("addon", None, None)
    assert builder.version_check("addon", Objects()) is True
    assert recorder.calls == []