# audit/enable_audit.py

"""
Enable and verify kube-apiserver audit logging on a kubeadm control-plane node.
Включение и проверка журналирования аудита kube-apiserver на kubeadm-ноде.

Шаги выполняются строго последовательно; единственная ветка: откат
манифеста из резервной копии, если он разрешён конфигурацией.
"""

import os
import sys
import time
import shutil

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log
from utils.errors import EXIT_OK, AuditSetupError, StabilityError, VerificationError
from utils.debug_audit import debug_dump
from data.audit_config import AuditConfig
from audit.preflight import run_preflight
from audit.write_policy import create_directories, write_policy, prepare_audit_log
from manifest.patch_apiserver_manifest import backup_manifest, apply_patch
from manifest.rollback import rollback, should_rollback
from cluster.wait_apiserver_ready import StabilityWaiter
from cluster.verify_audit_log import Verifier

TOTAL_STEPS = 8
SHOWN_MATCHES = 5


class AuditEnabler:
    def __init__(self, config: AuditConfig, waiter=None, verifier=None, sleep=time.sleep,
                 euid=None, which=shutil.which, diagnostics=debug_dump):
        self.config = config
        self.waiter = waiter or StabilityWaiter(config)
        self.verifier = verifier or Verifier(config)
        self.sleep = sleep
        self.euid = euid
        self.which = which
        self.diagnostics = diagnostics
        self.backup_path = None
        self._step_no = 0

    def _step(self, title: str):
        self._step_no += 1
        log(f"[{self._step_no}/{TOTAL_STEPS}] {title}", "step")

    def _fail(self, error):
        """
        Dump diagnostics, roll back if enabled, then raise.
        Собирает диагностику, при необходимости откатывает манифест и бросает ошибку.
        """
        try:
            self.diagnostics(self.config)
        except Exception as e:
            log(f"Диагностика прервана: {e!r}", "warn")
        if self.backup_path and should_rollback(self.config):
            try:
                rollback(self.config, self.backup_path, sleep=self.sleep)
            except AuditSetupError as e:
                log(str(e), "error")
        raise error

    def run(self) -> int:
        run_preflight(self.config, euid=self.euid, which=self.which)

        self._step("Создание каталогов")
        create_directories(self.config)

        self._step("Запись политики аудита")
        write_policy(self.config)

        self._step("Подготовка файла audit.log")
        prepare_audit_log(self.config)

        self._step("Резервная копия манифеста kube-apiserver")
        self.backup_path = backup_manifest(self.config.manifest_path)

        self._step("Патч манифеста kube-apiserver")
        apply_patch(self.config)

        self._step("Ожидание стабильной готовности apiserver")
        if not self.waiter.wait():
            self._fail(StabilityError("kube-apiserver не вышел в стабильное состояние"))

        self._step("Генерация событий и проверка audit.log")
        if not self.verifier.verify():
            self._fail(VerificationError(f"audit.log не содержит {self.verifier.token}"))

        self._step("Журналирование аудита включено и проверено")
        log(f"Audit log: {self.config.audit_log_file}", "ok")
        for line in self.verifier.matches[-SHOWN_MATCHES:]:
            print(line)
        return EXIT_OK


def enable_audit(config: AuditConfig, **kwargs) -> int:
    return AuditEnabler(config, **kwargs).run()
