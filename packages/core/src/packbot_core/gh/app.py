"""GitHub App handle.

One GitHubApp is built at start-up from the App credentials and handed to
every webhook handler. It hands out installation-scoped clients and knows
the App's own bot login, which the workflow-run handler compares against the
actor that triggered a run.
"""

from __future__ import annotations

import logging
import threading

from github import Auth, Github, GithubIntegration

logger = logging.getLogger(__name__)


class GitHubApp:
    def __init__(self, app_id: str | int, private_key: str, integration: GithubIntegration | None = None):
        self._integration = integration or GithubIntegration(auth=Auth.AppAuth(app_id, private_key))
        self._bot_login: str | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: dict) -> GitHubApp:
        return cls(app_id=config["app_id"], private_key=config["private_key"])

    def installation(self, installation_id: int) -> Github:
        """Return a client authenticated as the given installation."""
        return self._integration.get_github_for_installation(installation_id)

    def for_repository(self, full_name: str) -> Github:
        """Return an installation client for a repository the App is installed on."""
        owner, _, name = full_name.partition("/")
        if not owner or not name:
            raise ValueError(f"Expected owner/name, got {full_name!r}")
        installation = self._integration.get_repo_installation(owner, name)
        return self.installation(installation.id)

    def bot_login(self) -> str:
        """Return ``<app-slug>[bot]``, looked up once from the App's own identity."""
        with self._lock:
            if self._bot_login is None:
                slug = self._integration.get_app().slug
                self._bot_login = f"{slug}[bot]"
                logger.debug("Resolved App bot login: %s", self._bot_login)
            return self._bot_login
