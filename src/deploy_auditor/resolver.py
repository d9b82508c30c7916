"""Resolution simulator for dependency references (include/require paths).

Emulates how the hosting runtime would look a referenced file up, without
running it. Three resolution contexts are tried in a fixed order:

1. relative_to_file: the declaring file's directory
2. relative_to_root: the project root (assumes a fixed working directory)
3. as_given: the reference unmodified, as the runtime's working directory sees it

The first candidate that exists on disk wins. All candidates are kept so an
unresolvable reference carries the full list as evidence.
"""

import os
import re
from functools import lru_cache
from pathlib import Path

from .models import DependencyReference, ResolutionAttempt, ResolutionCandidate


RELATIVE_TO_FILE = "relative_to_file"
RELATIVE_TO_ROOT = "relative_to_root"
AS_GIVEN = "as_given"

PARENT_SEGMENT = "../"


@lru_cache(maxsize=16)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def extract_references(text: str, pattern: str) -> list[DependencyReference]:
    """Find dependency statements in source text, line by line.

    `pattern` must define a `path` group; `kind` and `anchor` groups are
    optional. Matches are heuristic: commented-out statements are reported
    like live ones.
    """
    regex = _compile(pattern)
    group_names = regex.groupindex
    references = []

    for line_num, line in enumerate(text.split("\n"), 1):
        stripped = line.strip()
        for match in regex.finditer(line):
            references.append(
                DependencyReference(
                    line=line_num,
                    statement=stripped,
                    path=match.group("path"),
                    kind=match.group("kind") if "kind" in group_names else "",
                    anchored="anchor" in group_names and bool(match.group("anchor")),
                )
            )
    return references


def _join(base: str, reference: str) -> str:
    # Plain concatenation, the way the runtime glues a directory and a path
    return base.rstrip("/") + "/" + reference.lstrip("/")


def simulate_resolution(
    reference: str,
    declaring_file: str | Path,
    project_root: str | Path,
    anchored: bool = False,
) -> ResolutionAttempt:
    """Simulate resolving `reference` as written in `declaring_file`.

    Args:
        reference: Raw path string from the dependency statement.
        declaring_file: File containing the statement.
        project_root: Root of the deployed application tree.
        anchored: Whether the statement prefixes the path with a
            file-location anchor (e.g. __DIR__).

    Returns:
        ResolutionAttempt with the three candidates in priority order and
        the two risk markers, which are set regardless of the outcome.
    """
    declaring_dir = os.path.dirname(os.path.abspath(declaring_file))
    root = os.path.abspath(project_root)

    paths = [
        (RELATIVE_TO_FILE, _join(declaring_dir, reference)),
        (RELATIVE_TO_ROOT, _join(root, reference)),
        (AS_GIVEN, reference),
    ]
    candidates = [
        ResolutionCandidate(context=context, path=path, exists=os.path.isfile(path))
        for context, path in paths
    ]

    return ResolutionAttempt(
        reference=reference,
        declaring_file=str(declaring_file),
        candidates=candidates,
        parent_directory_escape=reference.startswith(PARENT_SEGMENT),
        missing_anchor=not anchored and not reference.startswith("/"),
    )
