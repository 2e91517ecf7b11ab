# --- test import path bootstrap (flat layout) ---
import sys as _sys
from pathlib import Path as _Path

_ROOT = _Path(__file__).resolve().parents[1]
if str(_ROOT) not in _sys.path:
    _sys.path.insert(0, str(_ROOT))
# --- end bootstrap ---

from pathlib import Path

import pytest

from data.audit_config import AuditConfig

KUBEADM_MANIFEST = """\
apiVersion: v1
kind: Pod
metadata:
  labels:
    component: kube-apiserver
    tier: control-plane
  name: kube-apiserver
  namespace: kube-system
spec:
  containers:
  - command:
    - kube-apiserver
    - --advertise-address=10.0.0.10
    - --authorization-mode=Node,RBAC
    - --etcd-servers=https://127.0.0.1:2379
    image: registry.k8s.io/kube-apiserver:v1.30.2
    name: kube-apiserver
    volumeMounts:
    - mountPath: /etc/kubernetes/pki
      name: k8s-certs
      readOnly: true
  hostNetwork: true
  volumes:
  - hostPath:
      path: /etc/kubernetes/pki
      type: DirectoryOrCreate
    name: k8s-certs
"""


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(tmp_path: Path) -> AuditConfig:
    audit_dir = tmp_path / "etc" / "audit"
    log_dir = tmp_path / "var" / "log" / "audit"
    manifests = tmp_path / "manifests"
    manifests.mkdir()
    return AuditConfig(
        audit_dir=str(audit_dir),
        policy_file=str(audit_dir / "audit-policy.yaml"),
        audit_log_dir=str(log_dir),
        audit_log_file=str(log_dir / "audit.log"),
        manifest_path=str(manifests / "kube-apiserver.yaml"),
        kubeconfig=None,
    )


@pytest.fixture
def manifest(config: AuditConfig) -> Path:
    path = Path(config.manifest_path)
    path.write_text(KUBEADM_MANIFEST)
    return path
