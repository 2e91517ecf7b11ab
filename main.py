#!/usr/bin/env python3
import os
import sys
import argparse
import argcomplete

from utils.logger import log
from utils.errors import AuditSetupError
from data.audit_config import AuditConfig
from audit.enable_audit import enable_audit


def parse_args(argv=None):
    """
    Парсит аргументы запуска с поддержкой автодополнения.
    """
    parser = argparse.ArgumentParser(description="Включение журналирования аудита kube-apiserver (kubeadm)")
    parser.add_argument(
        "--auto-rollback",
        action="store_true",
        default=None,
        help="Откатить манифест, если apiserver не стабилизировался или проверка не прошла (как AUTO_ROLLBACK=1)"
    )
    parser.add_argument("--manifest", dest="manifest_path", help="Путь к static pod манифесту kube-apiserver")
    parser.add_argument("--kubeconfig", help="kubeconfig для kubectl (по умолчанию /etc/kubernetes/admin.conf)")

    # Автоматически активируем autocompletion только если переменная окружения выставлена
    if "_ARGCOMPLETE" in os.environ:
        argcomplete.autocomplete(parser)

    return parser.parse_args(argv)


def run(argv=None, environ=None, **kwargs) -> int:
    args = parse_args(argv)
    config = AuditConfig.from_env(
        environ,
        auto_rollback=args.auto_rollback,
        manifest_path=args.manifest_path,
        kubeconfig=args.kubeconfig,
    )
    log(f"Включение аудита kube-apiserver (AUTO_ROLLBACK={int(config.auto_rollback)})", "info")
    try:
        return enable_audit(config, **kwargs)
    except AuditSetupError as e:
        log(f"ERROR: {e}", "error")
        return e.exit_code


def cli():
    sys.exit(run())


if __name__ == '__main__':
    cli()
