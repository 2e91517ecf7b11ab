#!/usr/bin/env python3
"""
Preflight checks before touching the control-plane node.
Предварительные проверки перед изменением control-plane ноды.
"""

import os
import sys
import shutil

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log
from utils.errors import PreconditionError
from data.audit_config import AuditConfig

REQUIRED_BINARIES = ["kubectl"]


def check_root(euid=None):
    euid = os.geteuid() if euid is None else euid
    if euid != 0:
        raise PreconditionError("Запустите от root (sudo).")
    log("Запуск от root", "ok")


def check_manifest(manifest_path: str):
    """
    The kubeadm static pod manifest must exist.
    Проверяет наличие static pod манифеста kube-apiserver (kubeadm).
    """
    if not os.path.isfile(manifest_path):
        raise PreconditionError(f"Отсутствует {manifest_path} (ожидается static pod kubeadm).")
    log(f"Манифест найден: {manifest_path}", "ok")


def check_binaries(binaries=None, which=shutil.which):
    for name in binaries or REQUIRED_BINARIES:
        if which(name) is None:
            raise PreconditionError(f"{name} не найден в PATH.")
        log(f"Бинарник доступен: {name}", "ok")


def run_preflight(config: AuditConfig, euid=None, which=shutil.which):
    """
    Run all precondition checks; raises PreconditionError on the first failure.
    Выполняет все проверки; при первой неудаче бросает PreconditionError.
    """
    check_root(euid)
    check_manifest(config.manifest_path)
    check_binaries(which=which)


if __name__ == "__main__":
    try:
        run_preflight(AuditConfig.from_env())
    except PreconditionError as e:
        log(str(e), "error")
        sys.exit(e.exit_code)
