"""
Derived-state rules for projects: completion, commission and progress.
"""

from __future__ import annotations

import math

from crc_dashboard.domains.models import Project, ProjectStatus


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (2.5 -> 3), unlike Python's round()."""
    return int(math.floor(value + 0.5))


def all_stages_done(project: Project) -> bool:
    return bool(project.stages) and all(s.done for s in project.stages)


def apply_completion(project: Project) -> bool:
    """
    Mark the project completed once every stage is done. Returns True if the
    status changed. Never moves a project out of `completed`.
    """
    if all_stages_done(project) and project.status is not ProjectStatus.COMPLETED:
        project.status = ProjectStatus.COMPLETED
        return True
    return False


def commission_amount(budget: float | None, percent: float | None) -> int:
    """Referrer commission in whole currency units: round(budget * percent / 100)."""
    return round_half_up(float(budget or 0) * float(percent or 0) / 100)


def project_commission(project: Project) -> int:
    return commission_amount(project.budget, project.commission_percent)


def stage_progress(project: Project) -> tuple[int, int]:
    """(done, total) stage counts."""
    done = sum(1 for s in project.stages if s.done)
    return done, len(project.stages)


def is_open(project: Project) -> bool:
    return project.status is not ProjectStatus.COMPLETED
