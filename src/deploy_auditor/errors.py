"""Exception hierarchy for the deployment auditor."""


class AuditError(Exception):
    """Base class for auditor errors."""


class ScanError(AuditError):
    """The scan root does not exist or cannot be read."""


class DatabaseUnavailableError(AuditError):
    """The relational store could not be reached."""


class ConfigError(AuditError):
    """The audit configuration could not be loaded."""
