from __future__ import annotations

import itertools

PACK_REACTION = "eyes"


def get_repo(gh, repo_name: str):
    # Lazy: the first real request names the repository in its URL.
    return gh.get_repo(repo_name, lazy=True)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_combined_state(repo, sha: str) -> str:
    """Return the aggregate legacy commit-status state: success, pending, failure or error."""
    return repo.get_commit(sha).get_combined_status().state


def get_check_runs(repo, sha: str) -> list:
    return list(repo.get_commit(sha).get_check_runs())


def get_permission(repo, login: str) -> str:
    return repo.get_collaborator_permission(login)


def get_issue_comment(repo, issue_number: int, comment_id: int):
    return repo.get_issue(issue_number).get_comment(comment_id)


def add_reaction(comment, content: str = PACK_REACTION):
    return comment.create_reaction(content)


def remove_reaction(comment, content: str = PACK_REACTION) -> bool:
    """Delete the first reaction of ``content`` on a comment.

    Returns False when there was nothing to delete.
    """
    for reaction in comment.get_reactions():
        if reaction.content == content:
            comment.delete_reaction(reaction.id)
            return True
    return False


def create_issue_comment(repo, issue_number: int, body: str):
    return repo.get_issue(issue_number).create_comment(body)


def dispatch_workflow(repo, workflow_id: str, branch: str, inputs: dict) -> bool:
    """Trigger a workflow_dispatch run. GitHub answers 204 with no run id.

    PyGithub reports a rejected dispatch as False rather than raising, so turn
    that into an error here.
    """
    if not repo.get_workflow(workflow_id).create_dispatch(ref=branch, inputs=inputs):
        raise RuntimeError(f"Dispatch of {workflow_id} on {branch} was rejected by GitHub")
    return True


def get_recent_runs(repo, workflow_id: str, limit: int) -> list:
    """Return the newest ``limit`` runs of a workflow, most recent first."""
    return list(itertools.islice(repo.get_workflow(workflow_id).get_runs(), limit))
