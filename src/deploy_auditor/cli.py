"""Console entrypoints.

Every command takes no arguments; the audited root, output directory and DSN
come from the environment (see `config.load_config`). Exit code is 1 when the
configuration cannot be loaded, 0 otherwise, whatever the findings.
"""

import logging
import sys
from typing import Callable, Optional

from .config import (
    DATABASE,
    DEPENDENCIES,
    ENVIRONMENT,
    EXPOSURE,
    PERMISSIONS,
    ROUTING,
    SYNTAX,
    VARIABLES,
    AuditConfig,
    load_config,
)
from .errors import ConfigError
from .remediation import generate_plan, render_plan
from .runner import run_category, run_pipeline

logger = logging.getLogger(__name__)


def _load() -> Optional[AuditConfig]:
    logging.basicConfig(level=logging.INFO)
    try:
        return load_config()
    except ConfigError as e:
        logger.error(str(e))
        return None


def _category_main(category: str) -> Callable[[], int]:
    def main() -> int:
        config = _load()
        if config is None:
            return 1
        run_category(category, config)
        return 0

    main.__name__ = f"{category.replace('-', '_')}_main"
    main.__doc__ = f"Run the {category} checker and write its report."
    return main


environment_main = _category_main(ENVIRONMENT)
syntax_main = _category_main(SYNTAX)
dependencies_main = _category_main(DEPENDENCIES)
variables_main = _category_main(VARIABLES)
permissions_main = _category_main(PERMISSIONS)
routing_main = _category_main(ROUTING)
exposure_main = _category_main(EXPOSURE)
database_main = _category_main(DATABASE)


def remediate_main() -> int:
    """Synthesize the fix plan from whatever reports are already on disk."""
    config = _load()
    if config is None:
        return 1
    plan = generate_plan(config)
    print(render_plan(plan))
    return 0


def all_main() -> int:
    """Run every checker, then the synthesizer."""
    config = _load()
    if config is None:
        return 1
    run_pipeline(config)
    return 0


if __name__ == "__main__":
    sys.exit(all_main())
