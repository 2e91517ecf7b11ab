#!/usr/bin/env python3
"""
Render the kube-apiserver audit policy from a Jinja2 template and prepare audit paths.
Генерация audit-policy.yaml из Jinja2-шаблона и подготовка каталогов аудита.
"""

import os
import sys
from pathlib import Path
from jinja2 import Environment, FileSystemLoader

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log
from utils.errors import AuditSetupError
from data.audit_config import AuditConfig

TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "data" / "templates"
TEMPLATE_NAME = "audit-policy.yaml.j2"

OMIT_STAGES = ["RequestReceived"]
SKIPPED_URLS = [
    "/healthz*",
    "/readyz*",
    "/livez*",
    "/metrics",
    "/version",
    "/swagger*",
    "/openapi*",
]
READ_VERBS = ["get", "list", "watch"]
WRITE_VERBS = ["create", "update", "patch", "delete", "deletecollection"]


def render_policy() -> str:
    """
    Render the fixed audit policy document.
    Рендерит неизменяемый документ политики аудита.
    """
    env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), keep_trailing_newline=True)
    template = env.get_template(TEMPLATE_NAME)
    rendered = template.render(
        omit_stages=OMIT_STAGES,
        skipped_urls=SKIPPED_URLS,
        read_verbs=READ_VERBS,
        write_verbs=WRITE_VERBS,
    )
    if not rendered.endswith("\n"):
        rendered += "\n"
    return rendered


def create_directories(config: AuditConfig):
    """
    Create audit config and log directories, owner-only access.
    Создаёт каталоги политики и логов аудита с правами 700.
    """
    for path in (config.audit_dir, config.audit_log_dir):
        try:
            os.makedirs(path, exist_ok=True)
            os.chmod(path, 0o700)
        except OSError as e:
            raise AuditSetupError(f"Не удалось подготовить каталог {path}: {e}") from e
        log(f"Каталог готов: {path}", "ok")


def write_policy(config: AuditConfig) -> str:
    """
    Write the policy file and restrict it to 0600. Returns the written content.
    Записывает файл политики и выставляет права 600.
    """
    content = render_policy()
    try:
        with open(config.policy_file, "w") as f:
            f.write(content)
        os.chmod(config.policy_file, 0o600)
    except OSError as e:
        raise AuditSetupError(f"Не удалось записать политику {config.policy_file}: {e}") from e
    log(f"Политика аудита записана: {config.policy_file}", "ok")
    return content


def prepare_audit_log(config: AuditConfig):
    try:
        Path(config.audit_log_file).touch(exist_ok=True)
        os.chmod(config.audit_log_file, 0o600)
    except OSError as e:
        raise AuditSetupError(f"Не удалось подготовить {config.audit_log_file}: {e}") from e
    log(f"Файл журнала аудита готов: {config.audit_log_file}", "ok")


def main():
    config = AuditConfig.from_env()
    log("=== Генерация политики аудита kube-apiserver ===", "info")
    try:
        create_directories(config)
        write_policy(config)
        prepare_audit_log(config)
    except AuditSetupError as e:
        log(str(e), "error")
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
