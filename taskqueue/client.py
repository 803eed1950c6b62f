from __future__ import annotations

import base64
import urllib.parse
from dataclasses import dataclass

import httpx

from taskqueue.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_LEASE_SECONDS,
    DEFAULT_PROJECT,
    DEFAULT_QUEUE,
    DELETE_PROJECT_PREFIX,
    LOGGER,
    NO_DESCRIPTION,
    NO_TASK_AVAILABLE,
    REQUEST_COMPLETE,
    REQUEST_FAILED,
)
from taskqueue.http import bearer_headers, error_description, error_kind


@dataclass(frozen=True)
class TaskQueueConfig:
    project: str = DEFAULT_PROJECT
    queue: str = DEFAULT_QUEUE
    lease_seconds: int = DEFAULT_LEASE_SECONDS
    base_url: str = DEFAULT_BASE_URL
    delete_project: str | None = None

    def __post_init__(self) -> None:
        if self.lease_seconds <= 0:
            raise ValueError("lease_seconds must be positive.")

    def _tasks_url(self, project: str) -> str:
        base = self.base_url.rstrip("/")
        return f"{base}/projects/{project}/taskqueues/{self.queue}/tasks"

    @property
    def lease_url(self) -> str:
        return f"{self._tasks_url(self.project)}/lease"

    def task_url(self, task_id: str) -> str:
        project = self.delete_project or f"{DELETE_PROJECT_PREFIX}{self.project}"
        return f"{self._tasks_url(project)}/{urllib.parse.quote(task_id, safe='')}"


@dataclass(frozen=True)
class PendingTask:
    id: str
    payload_base64: str

    @classmethod
    def from_item(cls, item: object) -> "PendingTask":
        if not isinstance(item, dict):
            raise ValueError("Leased task must be a JSON object.")
        task_id = item.get("id")
        payload = item.get("payloadBase64")
        if not isinstance(task_id, str) or not task_id:
            raise ValueError("Leased task missing id.")
        if not isinstance(payload, str):
            raise ValueError("Leased task missing payloadBase64.")
        return cls(id=task_id, payload_base64=payload)

    def decode_payload(self) -> str:
        return base64.b64decode(self.payload_base64, validate=True).decode("utf-8")


@dataclass(frozen=True)
class TaskResult:
    """Outcome of one lease-then-delete round trip.

    ``leased`` records that the queue handed out a task, even when its
    payload could not be decoded afterwards.
    """

    payload: str | None = None
    leased: bool = False
    task_id: str | None = None
    error: str | None = None
    error_description: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        if self.ok:
            return REQUEST_COMPLETE
        return f"{REQUEST_FAILED} [{self.error_description or NO_DESCRIPTION}]"

    @classmethod
    def failed(
        cls,
        error: str,
        description: str | None = None,
        *,
        leased: bool = False,
        task_id: str | None = None,
    ) -> "TaskResult":
        return cls(
            leased=leased,
            task_id=task_id,
            error=error,
            error_description=description,
        )


class TaskQueueClient:
    """Leases one task from a pull queue and deletes it once consumed.

    Each call makes a single attempt; failures come back as a failed
    :class:`TaskResult` and are never retried here.
    """

    def __init__(
        self,
        config: TaskQueueConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or TaskQueueConfig()
        self._client = client

    async def fetch_and_consume_task(self, access_token: str | None) -> TaskResult:
        own_client = self._client is None
        http_client = self._client or httpx.AsyncClient()

        try:
            return await self._lease_and_consume(http_client, access_token)
        finally:
            if own_client:
                await http_client.aclose()

    async def _lease_and_consume(
        self,
        http_client: httpx.AsyncClient,
        access_token: str | None,
    ) -> TaskResult:
        headers = bearer_headers(access_token)
        try:
            response = await http_client.post(
                self.config.lease_url,
                params={"leaseSecs": self.config.lease_seconds, "numTasks": 1},
                headers=headers,
                content=b"",
            )
            body = response.json()
        except httpx.HTTPError as error:
            LOGGER.warning("Lease request failed: %s", error)
            return TaskResult.failed("network_error")
        except ValueError as error:
            LOGGER.warning("Lease response is not valid JSON: %s", error)
            return TaskResult.failed("parse_error")

        LOGGER.info("Taskqueue Response %s", body)
        if not isinstance(body, dict):
            LOGGER.warning("Lease response is not a JSON object.")
            return TaskResult.failed("parse_error")

        if "error" in body:
            description = error_description(body)
            LOGGER.warning("Lease request rejected: %s", description or NO_DESCRIPTION)
            return TaskResult.failed(error_kind(body), description)

        if response.status_code >= 400:
            return TaskResult.failed(f"http_{response.status_code}")

        items = body.get("items")
        if items is None:
            items = []
        if not isinstance(items, list):
            LOGGER.warning("Lease response items is not a list.")
            return TaskResult.failed("parse_error")
        if not items:
            LOGGER.info("There is no task to lease.")
            return TaskResult(payload=NO_TASK_AVAILABLE)

        try:
            task = PendingTask.from_item(items[0])
        except ValueError as error:
            LOGGER.warning("Leased task is malformed: %s", error)
            return TaskResult.failed("parse_error", leased=True)

        try:
            payload: str | None = task.decode_payload()
        except ValueError as error:
            LOGGER.warning("Could not decode payload of task %s: %s", task.id, error)
            payload = None

        await self._delete_task(http_client, task.id, headers)

        if payload is None:
            return TaskResult.failed("decode_failed", leased=True, task_id=task.id)
        return TaskResult(payload=payload, leased=True, task_id=task.id)

    async def _delete_task(
        self,
        http_client: httpx.AsyncClient,
        task_id: str,
        headers: dict[str, str],
    ) -> bool:
        try:
            response = await http_client.delete(self.config.task_url(task_id), headers=headers)
        except httpx.HTTPError as error:
            LOGGER.warning("Delete of task %s failed: %s", task_id, error)
            return False

        if response.status_code >= 400:
            LOGGER.warning("Delete of task %s failed with status %s", task_id, response.status_code)
            return False
        return True
