#!/usr/bin/env python3
"""
Sandbox entrypoint for deploy-auditor.
Reads an optional AuditConfig from stdin JSON, runs every checker and the
remediation synthesizer, and outputs the plan as JSON to stdout.
"""

import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from pydantic import ValidationError

from deploy_auditor.config import AuditConfig, load_config
from deploy_auditor.errors import ConfigError
from deploy_auditor.runner import run_pipeline


def main() -> None:
    # Progress goes to stderr; stdout carries only the plan JSON
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    input_data = sys.stdin.read()
    try:
        if input_data.strip():
            config = AuditConfig.model_validate_json(input_data)
        else:
            config = load_config()
    except (ValidationError, ConfigError) as e:
        print(
            json.dumps(
                {
                    "error": f"Invalid input: {e}",
                    "example": {"root": "../public_html", "output_dir": ".", "dsn": "sqlite:///app.db"},
                }
            )
        )
        sys.exit(1)

    try:
        plan = run_pipeline(config, echo=False)
        print(plan.model_dump_json(indent=2))
    except Exception as e:
        print(json.dumps({"error": str(e)}))
        sys.exit(1)


if __name__ == "__main__":
    main()
