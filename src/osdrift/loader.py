"""Discover project directories and run the comparison for each of them.

Expected layout::

    <root>/
      project1/
        state/    # terraform show -json output
        truth/    # cache exports (servers.json, secgrps.json, ...)
      project2/
        ...
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from osdrift.compare import compare_resources
from osdrift.models import ProjectDrift, Resource, ResourceCounts
from osdrift.report import DriftReport
from osdrift.state import load_state_dir
from osdrift.truth import load_truth_dir

logger = logging.getLogger(__name__)

STATE_DIR = "state"
TRUTH_DIR = "truth"


class ProjectDiscoveryError(Exception):
    """The root path is unusable or holds no project directories."""


@dataclass(frozen=True)
class ProjectDir:
    name: str
    base_path: Path
    state_path: Path
    truth_path: Path

    @classmethod
    def at(cls, base_path: Path) -> "ProjectDir":
        return cls(
            name=base_path.name,
            base_path=base_path,
            state_path=base_path / STATE_DIR,
            truth_path=base_path / TRUTH_DIR,
        )


def discover_projects(root: str | Path) -> list[ProjectDir]:
    """Find every immediate subdirectory holding ``state/`` and/or ``truth/``."""
    root = Path(root)
    if not root.exists():
        raise ProjectDiscoveryError(f"Path does not exist: {root}")
    if not root.is_dir():
        raise ProjectDiscoveryError(f"Path is not a directory: {root}")

    try:
        entries = sorted(root.iterdir())
    except OSError as exc:
        raise ProjectDiscoveryError(f"Failed to read {root}: {exc}") from exc

    projects = []
    for entry in entries:
        if not entry.is_dir():
            continue
        project = ProjectDir.at(entry)
        if project.state_path.is_dir() or project.truth_path.is_dir():
            projects.append(project)
        else:
            logger.debug("Skipping %s: no %s/ or %s/ directory", entry, STATE_DIR, TRUTH_DIR)

    if not projects:
        raise ProjectDiscoveryError(
            f"No project directories found in {root} "
            f"(expected directories with '{STATE_DIR}' and/or '{TRUTH_DIR}' subdirectories)"
        )
    return projects


def load_project(project: ProjectDir) -> tuple[list[Resource], list[Resource]]:
    """Load (state, truth) resources. A missing subdirectory means no resources."""
    state: list[Resource] = []
    truth: list[Resource] = []
    if project.state_path.is_dir():
        state = load_state_dir(project.state_path, project.name)
    if project.truth_path.is_dir():
        truth = load_truth_dir(project.truth_path, project.name)
    return state, truth


def process_project(project: ProjectDir) -> ProjectDrift:
    state, truth = load_project(project)
    drifts = compare_resources(state, truth)
    logger.info(
        "Project %s: %d state, %d truth resources, %d drift items",
        project.name,
        len(state),
        len(truth),
        len(drifts),
    )
    return ProjectDrift(
        project_name=project.name,
        drifts=tuple(drifts),
        state_count=ResourceCounts.of(state),
        truth_count=ResourceCounts.of(truth),
    )


def process_all_projects(root: str | Path) -> DriftReport:
    """Compare every project under ``root`` and fold the results into a report.

    Raises ProjectDiscoveryError before any comparison if discovery fails. A
    project that fails to load is logged and left out of the report.
    """
    projects = discover_projects(root)

    report = DriftReport()
    for project in projects:
        try:
            project_drift = process_project(project)
        except (OSError, ValueError):
            logger.exception("Failed to process project %s", project.name)
            continue
        report.add_project(project_drift)
    return report


def ensure_project_dirs(project_path: str | Path) -> ProjectDir:
    """Create the ``state/`` and ``truth/`` directories for a project."""
    project = ProjectDir.at(Path(project_path))
    project.state_path.mkdir(parents=True, exist_ok=True)
    project.truth_path.mkdir(parents=True, exist_ok=True)
    return project
