# utils/errors.py

"""
Error taxonomy for the audit enablement run.
Классы ошибок процесса включения аудита; каждая ошибка несёт код выхода.
"""

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_UNVERIFIED = 2


class AuditSetupError(Exception):
    """
    Fatal failure; the process exits with ``exit_code``.
    Фатальная ошибка, процесс завершается с кодом ``exit_code``.
    """
    exit_code = EXIT_FATAL


class PreconditionError(AuditSetupError):
    """Нет root, нет манифеста или нет kubectl; проверяется до каких-либо изменений."""


class ManifestError(AuditSetupError):
    """Манифест kube-apiserver имеет неожиданную структуру."""


class StabilityError(AuditSetupError):
    """kube-apiserver не вышел в стабильный /readyz за отведённое время."""


class VerificationError(AuditSetupError):
    """
    Patch applied, but the marker never reached the audit log.
    Патч применён, но маркер не появился в audit.log.
    """
    exit_code = EXIT_UNVERIFIED
