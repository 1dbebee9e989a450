"""Green-check evaluation for a pull request's head commit.

A pull request is green when the combined legacy commit status is exactly
``success`` and no check run, taking only the latest run per check name,
finished with a blocking conclusion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from packbot_core.gh.api import get_check_runs, get_combined_state, get_pull

logger = logging.getLogger(__name__)

# Skipped is often the label-gated CI job.
NON_BLOCKING_CONCLUSIONS = frozenset({"success", "neutral", "skipped"})

# Runs without a completion time sort before every completed run.
_NEVER = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class GreenCheck:
    """Outcome of one evaluation, kept for logging and the `packbot check` table."""

    pr_number: int
    head_sha: str
    status_state: str
    latest_runs: list = field(default_factory=list)
    failed_runs: list = field(default_factory=list)

    @property
    def is_green(self) -> bool:
        return self.status_state == "success" and not self.failed_runs


def _completed_at(run) -> datetime:
    completed_at = run.completed_at
    if completed_at is None:
        return _NEVER
    if completed_at.tzinfo is None:
        return completed_at.replace(tzinfo=timezone.utc)
    return completed_at


def latest_check_runs(check_runs) -> dict:
    """Keep, per check name, the run with the most recent completion time.

    On equal timestamps the run seen first wins.
    """
    latest: dict = {}
    for run in check_runs:
        current = latest.get(run.name)
        if current is None or _completed_at(run) > _completed_at(current):
            latest[run.name] = run
    return latest


def is_failed_run(run) -> bool:
    return run.status == "completed" and run.conclusion not in NON_BLOCKING_CONCLUSIONS


def evaluate_pr(repo, pr_number: int) -> GreenCheck:
    """Fetch statuses and check runs for the PR head and compute the verdict.

    API errors propagate; callers must not read a failed fetch as "not green".
    """
    head_sha = get_pull(repo, pr_number).head.sha
    status_state = get_combined_state(repo, head_sha)
    latest = latest_check_runs(get_check_runs(repo, head_sha))
    failed = [run for run in latest.values() if is_failed_run(run)]
    return GreenCheck(
        pr_number=pr_number,
        head_sha=head_sha,
        status_state=status_state,
        latest_runs=list(latest.values()),
        failed_runs=failed,
    )


def is_pr_green(repo, pr_number: int, log: logging.Logger = logger) -> bool:
    result = evaluate_pr(repo, pr_number)
    log.debug(
        "PR green check: pr=%d sha=%s green=%s status=%s failed_checks=%s",
        pr_number,
        result.head_sha,
        result.is_green,
        result.status_state,
        [run.name for run in result.failed_runs],
    )
    return result.is_green
