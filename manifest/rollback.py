# manifest/rollback.py

"""
Restore the kube-apiserver manifest from a backup.
Восстановление манифеста kube-apiserver из резервной копии.
"""

import os
import sys
import time
import shutil

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log
from utils.errors import AuditSetupError
from data.audit_config import AuditConfig


def rollback(config: AuditConfig, backup_path: str, sleep=time.sleep):
    """
    Copy the backup over the live manifest and give kubelet time to pick it up.
    Копирует бэкап поверх манифеста и ждёт, пока kubelet подхватит изменения.
    """
    log(f"Откат -> {backup_path}", "warn")
    try:
        shutil.copy2(backup_path, config.manifest_path)
    except OSError as e:
        raise AuditSetupError(f"Не удалось восстановить {config.manifest_path} из {backup_path}: {e}") from e
    sleep(config.rollback_pause)
    log(f"Манифест восстановлен: {config.manifest_path}", "ok")


def should_rollback(config: AuditConfig) -> bool:
    if not config.auto_rollback:
        log("AUTO_ROLLBACK выключен — откат выполняется вручную из резервной копии", "warn")
    return config.auto_rollback
