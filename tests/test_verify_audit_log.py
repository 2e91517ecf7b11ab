import json
import subprocess
from dataclasses import replace
from pathlib import Path

from cluster import verify_audit_log
from cluster.verify_audit_log import Verifier, find_marker, kubectl, make_token, tail_lines

TOKEN = "audit-log-test-1700000000"


def _event(verb: str, name: str) -> str:
    return json.dumps({
        "kind": "Event",
        "level": "RequestResponse",
        "verb": verb,
        "objectRef": {"resource": "namespaces", "name": name},
    }) + "\n"


class FakeKubectl:
    """Records kubectl calls; optionally appends audit events like a live apiserver."""

    def __init__(self, log_path=None, fail=False):
        self.log_path = log_path
        self.fail = fail
        self.calls = []

    def __call__(self, config, *args):
        self.calls.append(args)
        if self.fail:
            raise subprocess.CalledProcessError(1, ["kubectl", *args], stderr="connection refused")
        if self.log_path:
            with open(self.log_path, "a") as f:
                f.write(_event(args[0], args[2]))
        return subprocess.CompletedProcess(args, 0)


def _prepare_log(config, lines=()):
    path = Path(config.audit_log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(lines))
    return path


def test_make_token_uses_prefix_and_seconds(config) -> None:
    assert make_token(config, now=1700000000.7) == TOKEN


def test_verify_finds_marker_written_after_events(config, clock) -> None:
    log_path = _prepare_log(config, [_event("get", "kube-system")])
    runner = FakeKubectl(log_path)

    verifier = Verifier(config, runner=runner, sleep=clock.sleep, token=TOKEN)

    assert verifier.verify() is True
    assert runner.calls == [("create", "ns", TOKEN), ("delete", "ns", TOKEN, "--wait=false")]
    assert clock.sleeps == [config.flush_wait]
    assert len(verifier.matches) == 2


def test_verify_reports_missing_marker(config, clock) -> None:
    _prepare_log(config, [_event("create", "audit-log-test-1")])

    verifier = Verifier(config, runner=FakeKubectl(), sleep=clock.sleep, token=TOKEN)

    assert verifier.verify() is False
    assert verifier.matches == []


def test_marker_outside_tail_window_is_not_found(config, clock) -> None:
    lines = [_event("create", TOKEN)] + [_event("get", "default") for _ in range(20)]
    _prepare_log(config, lines)
    config = replace(config, grep_lines=10)

    verifier = Verifier(config, runner=FakeKubectl(), sleep=clock.sleep, token=TOKEN)

    assert verifier.verify() is False


def test_missing_audit_log_is_not_found(config, clock) -> None:
    verifier = Verifier(config, runner=FakeKubectl(), sleep=clock.sleep, token=TOKEN)

    assert verifier.verify() is False


def test_kubectl_failure_is_not_found(config, clock) -> None:
    _prepare_log(config)
    runner = FakeKubectl(fail=True)

    verifier = Verifier(config, runner=runner, sleep=clock.sleep, token=TOKEN)

    assert verifier.verify() is False
    assert runner.calls == [("create", "ns", TOKEN)]
    assert clock.sleeps == []


def test_tail_lines_returns_last_lines(tmp_path: Path) -> None:
    path = tmp_path / "audit.log"
    path.write_text("".join(f"line {i}\n" for i in range(10)))

    assert tail_lines(str(path), 3) == ["line 7\n", "line 8\n", "line 9\n"]
    assert find_marker(str(path), "line 9", 3) == ["line 9"]


def test_kubectl_passes_kubeconfig(config, monkeypatch) -> None:
    seen = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        seen["check"] = kwargs.get("check")
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(verify_audit_log.subprocess, "run", fake_run)

    kubectl(replace(config, kubeconfig="/etc/kubernetes/admin.conf"), "create", "ns", TOKEN)

    assert seen["cmd"] == ["kubectl", "--kubeconfig=/etc/kubernetes/admin.conf", "create", "ns", TOKEN]
    assert seen["check"] is True


def test_token_is_stamped_when_events_are_generated(config, clock, monkeypatch) -> None:
    _prepare_log(config)
    monkeypatch.setattr(verify_audit_log.time, "time", lambda: 1700000000.0)
    runner = FakeKubectl(config.audit_log_file)

    verifier = Verifier(config, runner=runner, sleep=clock.sleep)
    assert verifier.token is None

    assert verifier.verify() is True
    assert verifier.token == TOKEN
    assert runner.calls[0] == ("create", "ns", TOKEN)
