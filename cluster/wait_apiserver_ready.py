#!/usr/bin/env python3
"""
Wait until kube-apiserver answers /readyz several times in a row.
Ожидание стабильной готовности kube-apiserver по /readyz.

После изменения манифеста kubelet перезапускает static pod асинхронно,
поэтому одной удачной проверки мало: требуется серия подряд.
"""

import os
import sys
import time
from enum import Enum

import requests
import urllib3

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log
from data.audit_config import AuditConfig

# /readyz на 127.0.0.1 отдаётся с самоподписанным сертификатом
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


class Readiness(Enum):
    POLLING = "polling"
    STABLE = "stable"
    UNSTABLE = "unstable"


def readyz_ok(url: str, timeout: float) -> bool:
    """
    Any HTTP response counts as success; only transport errors fail.
    Любой HTTP-ответ считается успехом, неудача только при ошибке соединения.
    """
    try:
        requests.get(url, timeout=timeout, verify=False)
        return True
    except requests.exceptions.RequestException:
        return False


class StabilityWaiter:
    """
    Polling state machine: POLLING -> STABLE or POLLING -> UNSTABLE.
    Машина состояний опроса; probe, clock и sleep подменяются в тестах.
    """

    def __init__(self, config: AuditConfig, probe=None, clock=time.monotonic, sleep=time.sleep):
        self.config = config
        self.probe = probe or (lambda: readyz_ok(config.readyz_url, config.probe_timeout))
        self.clock = clock
        self.sleep = sleep
        self.state = Readiness.POLLING
        self.streak = 0

    def step(self) -> Readiness:
        """
        Run one probe and update the streak.
        Выполняет одну проверку и обновляет серию успехов.
        """
        if self.probe():
            self.streak += 1
            log(f"readyz ok ({self.streak}/{self.config.ready_streak_required})", "info")
            if self.streak >= self.config.ready_streak_required:
                self.state = Readiness.STABLE
        else:
            self.streak = 0
        return self.state

    def wait(self) -> bool:
        deadline = self.clock() + self.config.wait_sec
        self.state = Readiness.POLLING
        self.streak = 0
        while self.clock() < deadline:
            if self.step() is Readiness.STABLE:
                log("kube-apiserver стабильно готов", "ok")
                return True
            self.sleep(self.config.sleep_step)
        self.state = Readiness.UNSTABLE
        log(f"kube-apiserver не стабилизировался за {self.config.wait_sec} сек", "error")
        return False


def wait_until_stable(config: AuditConfig, **kwargs) -> bool:
    return StabilityWaiter(config, **kwargs).wait()


if __name__ == "__main__":
    sys.exit(0 if wait_until_stable(AuditConfig.from_env()) else 1)
