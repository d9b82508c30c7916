"""Checker modules, one per report category."""

from .dependencies import run_checks as run_dependency_checks
from .environment import run_checks as run_environment_checks
from .exposure import run_checks as run_exposure_checks
from .permissions import run_checks as run_permission_checks
from .routing import run_checks as run_routing_checks
from .syntax import run_checks as run_syntax_checks
from .variables import run_checks as run_variable_checks

__all__ = [
    "run_dependency_checks",
    "run_environment_checks",
    "run_exposure_checks",
    "run_permission_checks",
    "run_routing_checks",
    "run_syntax_checks",
    "run_variable_checks",
]
