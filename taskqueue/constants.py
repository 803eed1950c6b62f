from __future__ import annotations

import logging

LOGGER = logging.getLogger("taskqueue.api")

DEFAULT_BASE_URL = "https://www.googleapis.com/taskqueue/v1beta2"
DEFAULT_PROJECT = "testcloudstorage-1470232940384"
DEFAULT_QUEUE = "pull-queue"
DEFAULT_LEASE_SECONDS = 60
DEFAULT_TIMEOUT_SECONDS = 30.0

# v1beta2 deletes tasks under the App Engine-qualified project id.
DELETE_PROJECT_PREFIX = "s~"

NO_TASK_AVAILABLE = "no task available"
REQUEST_COMPLETE = "request complete"
REQUEST_FAILED = "request failed"
NO_DESCRIPTION = "No description"
