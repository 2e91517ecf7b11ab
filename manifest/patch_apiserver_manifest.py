#!/usr/bin/env python3
"""
Patch the kube-apiserver static pod manifest to enable audit logging.
Патч static pod манифеста kube-apiserver для включения журналирования аудита.

Патч идемпотентен: флаги аудита заменяются (удалить по префиксу, затем
добавить в конец), а volumeMounts/volumes обновляются по имени. Повторный
запуск даёт байт-в-байт тот же файл.
"""

import os
import sys
import copy
import shutil
from dataclasses import dataclass
from datetime import datetime
from typing import List

import yaml

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log
from utils.errors import AuditSetupError, ManifestError
from data.audit_config import AuditConfig

POLICY_VOLUME = "audit-policy"
LOGS_VOLUME = "audit-logs"


@dataclass(frozen=True)
class VolumeMount:
    name: str
    mount_path: str
    read_only: bool

    def to_dict(self) -> dict:
        return {"name": self.name, "mountPath": self.mount_path, "readOnly": bool(self.read_only)}


@dataclass(frozen=True)
class HostPathVolume:
    name: str
    path: str
    type: str

    def to_dict(self) -> dict:
        return {"name": self.name, "hostPath": {"path": self.path, "type": self.type}}


def set_flag(command: List[str], prefix: str, value: str) -> List[str]:
    """
    Drop every argument with the prefix and append ``<prefix><value>``.
    Удаляет все аргументы с префиксом и добавляет ``<prefix><value>`` в конец.
    """
    out = [arg for arg in command if not arg.startswith(prefix)]
    out.append(f"{prefix}{value}")
    return out


def upsert_by_name(entries: List[dict], entry: dict) -> List[dict]:
    """
    Update the entry with the same name in place, or append it.
    Обновляет запись с тем же именем на месте либо добавляет новую.
    """
    out = []
    found = False
    for existing in entries:
        if not found and existing.get("name") == entry["name"]:
            merged = dict(existing)
            merged.update(entry)
            out.append(merged)
            found = True
        else:
            out.append(existing)
    if not found:
        out.append(dict(entry))
    return out


def audit_mounts(config: AuditConfig) -> List[VolumeMount]:
    return [
        VolumeMount(POLICY_VOLUME, config.policy_file, True),
        VolumeMount(LOGS_VOLUME, config.audit_log_dir, False),
    ]


def audit_volumes(config: AuditConfig) -> List[HostPathVolume]:
    return [
        HostPathVolume(POLICY_VOLUME, config.policy_file, "File"),
        HostPathVolume(LOGS_VOLUME, config.audit_log_dir, "DirectoryOrCreate"),
    ]


def _first_container(doc) -> dict:
    try:
        container = doc["spec"]["containers"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise ManifestError(f"В манифесте нет spec.containers[0]: {e!r}") from e
    if not isinstance(container, dict):
        raise ManifestError("spec.containers[0] не является объектом")
    return container


def patch_manifest(doc: dict, config: AuditConfig) -> dict:
    """
    Return a patched copy of the manifest; the input is left untouched.
    Возвращает пропатченную копию манифеста, исходный документ не изменяется.

    Затрагиваются только spec.containers[0].command,
    spec.containers[0].volumeMounts и spec.volumes.
    """
    doc = copy.deepcopy(doc)
    container = _first_container(doc)

    command = list(container.get("command") or [])
    for prefix, value in config.audit_flags:
        command = set_flag(command, prefix, value)
    container["command"] = command

    mounts = list(container.get("volumeMounts") or [])
    for mount in audit_mounts(config):
        mounts = upsert_by_name(mounts, mount.to_dict())
    container["volumeMounts"] = mounts

    volumes = list(doc["spec"].get("volumes") or [])
    for volume in audit_volumes(config):
        volumes = upsert_by_name(volumes, volume.to_dict())
    doc["spec"]["volumes"] = volumes

    return doc


def dump_manifest(doc: dict) -> str:
    return yaml.safe_dump(doc, default_flow_style=False, sort_keys=False)


def load_manifest(path: str) -> dict:
    try:
        with open(path, "r") as f:
            doc = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ManifestError(f"Некорректный YAML в {path}: {e}") from e
    except OSError as e:
        raise AuditSetupError(f"Не удалось прочитать {path}: {e}") from e
    if not isinstance(doc, dict):
        raise ManifestError(f"{path} не содержит объект Pod")
    return doc


def backup_manifest(path: str, now=None) -> str:
    """
    Copy the manifest to ``<path>.bak.<YYYYmmddHHMMSS>`` keeping metadata.
    Создаёт резервную копию манифеста с отметкой времени (права и время сохраняются).
    """
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    backup_path = f"{path}.bak.{stamp}"
    try:
        shutil.copy2(path, backup_path)
    except OSError as e:
        raise AuditSetupError(f"Не удалось создать резервную копию {path}: {e}") from e
    log(f"Резервная копия: {backup_path}", "ok")
    return backup_path


def apply_patch(config: AuditConfig) -> dict:
    """
    Load, patch and overwrite the manifest at ``config.manifest_path``.
    Загружает, патчит и перезаписывает манифест kube-apiserver.
    """
    doc = load_manifest(config.manifest_path)
    patched = patch_manifest(doc, config)
    try:
        with open(config.manifest_path, "w") as f:
            f.write(dump_manifest(patched))
    except OSError as e:
        raise AuditSetupError(f"Не удалось записать {config.manifest_path}: {e}") from e
    log(f"Манифест обновлён: {config.manifest_path}", "ok")
    return patched


def main():
    config = AuditConfig.from_env()
    log("=== Патч манифеста kube-apiserver ===", "info")
    try:
        backup_manifest(config.manifest_path)
        apply_patch(config)
    except AuditSetupError as e:
        log(str(e), "error")
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
