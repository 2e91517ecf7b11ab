#!/usr/bin/env python3
"""
Diagnostics dump for failed audit enablement.
Диагностика при неудачном включении аудита kube-apiserver.

Все проверки носят справочный характер: отсутствие crictl, файла или прав
не прерывает работу, а только отмечается предупреждением.
"""

import os
import re
import sys
import grp
import pwd
import stat
import subprocess
from collections import deque

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log
from data.audit_config import AuditConfig

FLAG_PATTERN = re.compile(
    r"--audit-policy-file=|--audit-log-path=|--audit-log-maxage=|--audit-log-maxbackup=|--audit-log-maxsize="
)


def manifest_flag_lines(manifest_path: str):
    """
    Audit flag lines from the manifest as ``<lineno>:<line>``.
    Строки манифеста с флагами аудита в формате ``<номер>:<строка>``.
    """
    result = []
    with open(manifest_path, "r", errors="replace") as f:
        for lineno, line in enumerate(f, 1):
            if FLAG_PATTERN.search(line):
                result.append(f"{lineno}:{line.rstrip()}")
    return result


def describe_path(path: str) -> str:
    st = os.stat(path)
    try:
        owner = pwd.getpwuid(st.st_uid).pw_name
    except KeyError:
        owner = str(st.st_uid)
    try:
        group = grp.getgrgid(st.st_gid).gr_name
    except KeyError:
        group = str(st.st_gid)
    return f"{stat.filemode(st.st_mode)} {owner} {group} {st.st_size} {path}"


def get_apiserver_cid():
    result = subprocess.run(
        ["crictl", "ps", "-a", "--name", "kube-apiserver", "-q"],
        capture_output=True, encoding="utf-8", errors="replace"
    )
    lines = result.stdout.strip().splitlines()
    return lines[0].strip() if lines else ""


def container_logs(cid: str, limit: int):
    result = subprocess.run(["crictl", "logs", cid], capture_output=True, encoding="utf-8", errors="replace")
    # crictl отдаёт логи контейнера и в stdout, и в stderr
    output = (result.stdout + result.stderr).splitlines()
    return output[-limit:]


def _tail(path: str, limit: int):
    with open(path, "r", errors="replace") as f:
        return [line.rstrip("\n") for line in deque(f, maxlen=limit)]


def dump_manifest_flags(config: AuditConfig):
    log("===== DEBUG: флаги apiserver в манифесте =====", "info")
    try:
        for line in manifest_flag_lines(config.manifest_path):
            print(line)
    except OSError as e:
        log(f"Не удалось прочитать манифест: {e}", "warn")


def dump_permissions(config: AuditConfig):
    log("===== DEBUG: права на файлы =====", "info")
    for path in (config.audit_dir, config.audit_log_dir, config.policy_file, config.audit_log_file):
        try:
            print(describe_path(path))
        except OSError as e:
            log(f"{path}: {e}", "warn")


def dump_container_logs(config: AuditConfig):
    log("===== DEBUG: последние логи apiserver =====", "info")
    try:
        cid = get_apiserver_cid()
        print(f"CID={cid}")
        if cid:
            for line in container_logs(cid, config.debug_container_log_lines):
                print(line)
    except OSError as e:
        log(f"crictl недоступен: {e}", "warn")


def dump_audit_tail(config: AuditConfig):
    log("===== DEBUG: хвост audit.log =====", "info")
    try:
        for line in _tail(config.audit_log_file, config.debug_audit_tail_lines):
            print(line)
    except OSError as e:
        log(f"Не удалось прочитать {config.audit_log_file}: {e}", "warn")


def debug_dump(config: AuditConfig):
    """
    Entry point for diagnostics.
    Точка входа для диагностики.
    """
    dump_manifest_flags(config)
    dump_permissions(config)
    dump_container_logs(config)
    dump_audit_tail(config)


if __name__ == "__main__":
    debug_dump(AuditConfig.from_env())
