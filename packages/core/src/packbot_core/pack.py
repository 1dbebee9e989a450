"""Pack flow: dispatch on a trigger comment, report back when the run completes.

The two halves never see each other. The comment handler dispatches the
publish workflow and writes a PackInfo record keyed by the run it thinks it
started; the workflow-run handler takes that record when the run completes
and comments on the pull request. The store is the only link between them.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from packbot_core.checks import is_pr_green
from packbot_core.config import trigger_phrase
from packbot_core.gh.api import (
    add_reaction,
    create_issue_comment,
    dispatch_workflow,
    get_issue_comment,
    get_permission,
    get_recent_runs,
    get_repo,
    remove_reaction,
)
from packbot_store.models import PackInfo, record_key

if TYPE_CHECKING:
    from packbot_core.context import PackContext

PACK_PERMISSIONS = frozenset({"admin", "write"})

# GitHub's clock and ours can disagree; a run created slightly "before" the
# dispatch call still counts as ours.
DISPATCH_CLOCK_SKEW = timedelta(seconds=30)


def pack_ref(pr_number: int) -> str:
    return f"refs/pull/{pr_number}/head"


def pack_tag(pr_number: int) -> str:
    return f"pr-{pr_number}"


def published_comment(tag: str, package: str) -> str:
    return (
        f"Your pack has been published under the `{tag}` tag. Install it with:\n\n"
        f"```sh\nnpm install {package}@{tag}\n```"
    )


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def find_dispatched_run(runs, branch: str, not_before: datetime):
    """Pick the run our dispatch most likely created.

    The dispatch API returns no run id, so this takes the newest
    workflow_dispatch run on ``branch`` that has not completed and was created
    no earlier than the dispatch call. Another dispatch of the same workflow
    in the same window can still be picked instead.
    """
    earliest = not_before - DISPATCH_CLOCK_SKEW
    for run in runs:
        if run.event != "workflow_dispatch" or run.status == "completed":
            continue
        if run.head_branch != branch:
            continue
        if run.created_at is not None and _as_utc(run.created_at) < earliest:
            continue
        return run
    return None


# ---------------------------------------------------------------------------
# issue_comment.created / issue_comment.edited
# ---------------------------------------------------------------------------


async def handle_comment(ctx: PackContext, payload: dict) -> None:
    """Dispatch the publish workflow for a green PR when a maintainer asks for it."""
    log = ctx.logger
    config = ctx.config
    comment = payload["comment"]
    issue = payload["issue"]

    phrase = trigger_phrase(config)
    body = comment.get("body") or ""
    if not body.startswith(phrase):
        log.debug("Comment does not start with %r", phrase)
        return

    user = comment.get("user")
    if not user:
        log.debug("Comment does not have a user associated with it")
        return

    if not issue.get("pull_request") or issue.get("state") != "open":
        log.debug("Comment is not on a pull request or pull request is not open")
        return

    repo_name = payload["repository"]["full_name"]
    if repo_name != config["target_repo"]:
        log.debug("Comment is on %s, not the pack target %s", repo_name, config["target_repo"])
        return

    pr_number = issue["number"]
    login = user["login"]
    gh = ctx.app.installation(payload["installation"]["id"])
    repo = get_repo(gh, repo_name)

    permission = await asyncio.to_thread(get_permission, repo, login)
    if permission not in PACK_PERMISSIONS:
        log.debug("User %s does not have sufficient permissions to pack (%s)", login, permission)
        return

    if not await asyncio.to_thread(is_pr_green, repo, pr_number, log):
        log.debug("PR #%d is not green, not packing", pr_number)
        return

    log.info("Beginning the pack process for %s#%d", repo_name, pr_number)
    comment_id = comment["id"]
    ctx.spawn(
        asyncio.to_thread(_mark_comment, repo, pr_number, comment_id),
        f"add eyes reaction to comment {comment_id}",
    )

    ref = pack_ref(pr_number)
    tag = pack_tag(pr_number)
    branch = config["dispatch_branch"]

    dispatched_at = datetime.now(timezone.utc)
    await asyncio.to_thread(
        dispatch_workflow,
        repo,
        config["workflow_id"],
        branch,
        {"ref": ref, "tag": tag, "dry_run": "false"},
    )
    log.debug("Dispatched %s with ref=%s tag=%s", config["workflow_id"], ref, tag)

    # Give GitHub time to register the run before looking for it.
    await asyncio.sleep(config["dispatch_grace_seconds"])
    runs = await asyncio.to_thread(get_recent_runs, repo, config["workflow_id"], config["run_lookup_limit"])
    run = find_dispatched_run(runs, branch, dispatched_at)
    if run is None:
        log.warning("Could not find the dispatched %s run for PR #%d", config["workflow_id"], pr_number)
        return

    record = PackInfo(pr_number=pr_number, comment_id=comment_id, tag=tag, workflow_run_id=run.id)
    await asyncio.to_thread(ctx.store.put, record_key(run.id), record, config["record_ttl"])
    log.info("Stored pack record for run %d (PR #%d, tag %s)", run.id, pr_number, tag)


def _mark_comment(repo, pr_number: int, comment_id: int) -> None:
    add_reaction(get_issue_comment(repo, pr_number, comment_id))


# ---------------------------------------------------------------------------
# workflow_run.completed
# ---------------------------------------------------------------------------


async def handle_workflow_run(ctx: PackContext, payload: dict) -> None:
    """Announce a finished pack on the pull request that requested it."""
    log = ctx.logger
    config = ctx.config
    run = payload["workflow_run"]
    run_id = run["id"]

    if run.get("name") != config["workflow_name"]:
        log.debug("Workflow run %d is %r, not %r", run_id, run.get("name"), config["workflow_name"])
        return

    if run.get("event") != "workflow_dispatch":
        log.debug("Workflow run %d was triggered by %s, not workflow_dispatch", run_id, run.get("event"))
        return

    if run.get("conclusion") != "success":
        log.debug("Workflow run %d concluded with %s", run_id, run.get("conclusion"))
        return

    repo_name = payload["repository"]["full_name"]
    if repo_name != config["target_repo"]:
        log.debug("Workflow run %d ran in %s, not the pack target %s", run_id, repo_name, config["target_repo"])
        return

    actor = (run.get("triggering_actor") or {}).get("login")
    bot_login = await asyncio.to_thread(ctx.app.bot_login)
    if actor != bot_login:
        log.debug("Workflow run %d was triggered by %s, not %s", run_id, actor, bot_login)
        return

    # Consumed here so a redelivered completion finds nothing.
    record = await asyncio.to_thread(ctx.store.take, record_key(run_id))
    if record is None:
        log.debug("No pack record for workflow run %d", run_id)
        return

    gh = ctx.app.installation(payload["installation"]["id"])
    repo = get_repo(gh, repo_name)

    body = published_comment(record.tag, config["install_package"])
    try:
        await asyncio.to_thread(create_issue_comment, repo, record.pr_number, body)
        log.info("Announced pack %s on PR #%d", record.tag, record.pr_number)
    except Exception:
        log.exception("Failed to comment pack result on PR #%d (run %d)", record.pr_number, run_id)

    ctx.spawn(
        asyncio.to_thread(_unmark_comment, repo, record, log),
        f"remove eyes reaction from comment {record.comment_id}",
    )


def _unmark_comment(repo, record: PackInfo, log: logging.Logger) -> None:
    comment = get_issue_comment(repo, record.pr_number, record.comment_id)
    if not remove_reaction(comment):
        log.debug("No eyes reaction to remove on comment %d", record.comment_id)
