# data/audit_config.py

"""
Immutable configuration of the audit enablement run.
Неизменяемая конфигурация включения аудита kube-apiserver.

Все константы собраны здесь и передаются в каждый шаг при создании.
Из окружения читаются только AUTO_ROLLBACK и KUBECONFIG.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

AUDIT_DIR = "/etc/kubernetes/audit"
AUDIT_LOG_DIR = "/var/log/kubernetes/audit"
APISERVER_MANIFEST = "/etc/kubernetes/manifests/kube-apiserver.yaml"
KUBECONFIG_PATH = "/etc/kubernetes/admin.conf"

TRUTHY = {"1", "true", "yes", "on"}


def env_flag(value: Optional[str]) -> bool:
    """
    Interpret a boolean-like environment value.
    Интерпретирует булево значение переменной окружения.
    """
    return (value or "").strip().lower() in TRUTHY


@dataclass(frozen=True)
class AuditConfig:
    # Пути
    audit_dir: str = AUDIT_DIR
    policy_file: str = os.path.join(AUDIT_DIR, "audit-policy.yaml")
    audit_log_dir: str = AUDIT_LOG_DIR
    audit_log_file: str = os.path.join(AUDIT_LOG_DIR, "audit.log")
    manifest_path: str = APISERVER_MANIFEST
    kubeconfig: Optional[str] = KUBECONFIG_PATH

    # Ротация audit.log (значения флагов kube-apiserver)
    max_age: str = "30"
    max_backup: str = "10"
    max_size: str = "100"

    # Ожидание готовности apiserver
    wait_sec: float = 240
    sleep_step: float = 3
    ready_streak_required: int = 3
    readyz_url: str = "https://127.0.0.1:6443/readyz"
    probe_timeout: float = 2

    # Проверка записи событий
    flush_wait: float = 6
    grep_lines: int = 5000
    namespace_prefix: str = "audit-log-test"

    # Откат
    auto_rollback: bool = False
    rollback_pause: float = 15

    # Диагностика
    debug_container_log_lines: int = 200
    debug_audit_tail_lines: int = 50

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "AuditConfig":
        """
        Build config from defaults, AUTO_ROLLBACK / KUBECONFIG and explicit overrides.
        Собирает конфиг из значений по умолчанию, окружения и явных переопределений.
        """
        environ = os.environ if environ is None else environ
        values = {"auto_rollback": env_flag(environ.get("AUTO_ROLLBACK"))}
        if environ.get("KUBECONFIG"):
            values["kubeconfig"] = environ["KUBECONFIG"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def audit_flags(self):
        """
        Ordered (prefix, value) pairs patched into the apiserver command.
        Пары (префикс флага, значение) в порядке применения.
        """
        return [
            ("--audit-policy-file=", self.policy_file),
            ("--audit-log-path=", self.audit_log_file),
            ("--audit-log-maxage=", self.max_age),
            ("--audit-log-maxbackup=", self.max_backup),
            ("--audit-log-maxsize=", self.max_size),
        ]
