"""Todoist API adapter - HTTP client for task fetching and renaming."""

import logging

import requests

from timecraft.core.tasks import Task
from timecraft.errors import TaskSourceError

logger = logging.getLogger(__name__)

API_BASE = "https://api.todoist.com/rest/v2"


class TodoistAdapter:
    """
    Todoist REST API adapter.

    Implements TaskRepository protocol. No business logic - just I/O.
    """

    def __init__(
        self,
        api_token: str,
        session: requests.Session | None = None,
        timeout: int = 15,
    ):
        self.api_token = api_token
        self.timeout = timeout
        self._session = session or requests.Session()

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Make an authenticated API request. Raises TaskSourceError."""
        if not self.api_token:
            raise TaskSourceError("No Todoist API token. Set TODOIST_API_TOKEN in timecraft.conf")
        try:
            resp = self._session.request(
                method,
                f"{API_BASE}{endpoint}",
                headers={"Authorization": f"Bearer {self.api_token}"},
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise TaskSourceError(f"Todoist request failed: {e}")

        if resp.status_code in (401, 403):
            raise TaskSourceError("Todoist rejected the API token")
        if resp.status_code == 404:
            raise TaskSourceError(f"Todoist resource not found: {endpoint}")
        if not resp.ok:
            raise TaskSourceError(f"Todoist error {resp.status_code}: {resp.text[:200]}")
        return resp

    def fetch_all(self) -> list[Task]:
        """Fetch all open tasks."""
        try:
            data = self._request("GET", "/tasks").json()
        except ValueError as e:
            raise TaskSourceError(f"Todoist returned an invalid response: {e}")
        if not isinstance(data, list):
            raise TaskSourceError("Todoist returned an unexpected task payload")
        tasks = []
        for item in data:
            try:
                tasks.append(Task.from_api(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping unparseable Todoist task: {e}")
        return tasks

    def update_task_title(self, task_id: str, new_title: str) -> None:
        """Replace a task's content."""
        self._request("POST", f"/tasks/{task_id}", json={"content": new_title})
        logger.info(f"Renamed Todoist task {task_id}")
