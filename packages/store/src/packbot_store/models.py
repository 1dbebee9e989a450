"""Correlation record model.

Decoupled from packbot_core so the store layer can be used independently.
The wire form is the JSON object written to every backend:
``{"prNumber": ..., "commentId": ..., "tag": ..., "workflowRunId": ...}``.
"""

from __future__ import annotations

from dataclasses import dataclass

_KEY_PREFIX = "pack-"


@dataclass(frozen=True)
class PackInfo:
    """Link between a dispatched workflow run and the pull request that asked for it.

    Written by the comment handler once the dispatched run has been identified,
    consumed once by the workflow-run handler when that run completes.
    """

    pr_number: int
    comment_id: int
    tag: str
    workflow_run_id: int


def record_key(workflow_run_id: int) -> str:
    return f"{_KEY_PREFIX}{workflow_run_id}"


def record_to_dict(record: PackInfo) -> dict:
    return {
        "prNumber": record.pr_number,
        "commentId": record.comment_id,
        "tag": record.tag,
        "workflowRunId": record.workflow_run_id,
    }


def record_from_dict(d: dict) -> PackInfo:
    """Build a PackInfo from its stored JSON object.

    Raises KeyError/ValueError for documents that are not correlation records,
    so a corrupt entry is never mistaken for a valid one.
    """
    return PackInfo(
        pr_number=int(d["prNumber"]),
        comment_id=int(d["commentId"]),
        tag=str(d["tag"]),
        workflow_run_id=int(d["workflowRunId"]),
    )
