#!/usr/bin/env python3
"""
Verify that kube-apiserver writes audit events.
Проверка того, что kube-apiserver действительно пишет события аудита.

Создаётся и сразу удаляется (без ожидания) namespace с уникальным именем,
затем имя ищется в последних строках audit.log.
"""

import os
import sys
import time
import subprocess
from collections import deque
from typing import List

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log
from data.audit_config import AuditConfig


def make_token(config: AuditConfig, now=None) -> str:
    """
    Timestamp-suffixed namespace name used as the audit marker.
    Имя namespace с отметкой времени, служащее маркером в audit.log.
    """
    seconds = int(time.time() if now is None else now)
    return f"{config.namespace_prefix}-{seconds}"


def kubectl(config: AuditConfig, *args) -> subprocess.CompletedProcess:
    cmd = ["kubectl"]
    if config.kubeconfig:
        cmd.append(f"--kubeconfig={config.kubeconfig}")
    cmd.extend(args)
    return subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE, text=True)


def generate_events(config: AuditConfig, token: str, runner=kubectl):
    """
    Create the marker namespace and request its deletion without waiting.
    Создаёт namespace-маркер и запрашивает его удаление без ожидания.
    """
    runner(config, "create", "ns", token)
    runner(config, "delete", "ns", token, "--wait=false")
    log(f"События сгенерированы: namespace {token}", "ok")


def tail_lines(path: str, limit: int) -> List[str]:
    """
    Last ``limit`` lines of a file; empty list if the file is missing.
    Последние ``limit`` строк файла; пустой список, если файла нет.
    """
    try:
        with open(path, "r", errors="replace") as f:
            return list(deque(f, maxlen=limit))
    except FileNotFoundError:
        return []


def find_marker(path: str, token: str, limit: int) -> List[str]:
    return [line.rstrip("\n") for line in tail_lines(path, limit) if token in line]


class Verifier:
    def __init__(self, config: AuditConfig, runner=kubectl, sleep=time.sleep, token=None):
        self.config = config
        self.runner = runner
        self.sleep = sleep
        self.token = token
        self.matches: List[str] = []

    def verify(self) -> bool:
        """
        Generate events, wait for the flush, scan the log tail.
        Генерирует события, ждёт сброса буфера и ищет маркер в хвосте лога.
        """
        if not self.token:
            self.token = make_token(self.config)
        try:
            generate_events(self.config, self.token, runner=self.runner)
        except (subprocess.CalledProcessError, OSError) as e:
            stderr = getattr(e, "stderr", None) or e
            log(f"Не удалось сгенерировать события через kubectl: {stderr}", "error")
            return False

        log(f"Ожидание {self.config.flush_wait} сек для записи audit.log", "info")
        self.sleep(self.config.flush_wait)

        self.matches = find_marker(self.config.audit_log_file, self.token, self.config.grep_lines)
        if self.matches:
            log(f"audit.log содержит {self.token}", "ok")
            return True
        log(f"VERIFY FAIL: audit.log не содержит {self.token}", "error")
        return False


if __name__ == "__main__":
    sys.exit(0 if Verifier(AuditConfig.from_env()).verify() else 2)
