"""Synchronous invocation of a Google Cloud Function."""
import logging
import threading
from dataclasses import dataclass
from typing import Optional

import google.auth
from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import functions_v1

from .exceptions import InvocationError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    """One function to scrape: the region it runs in and its name or full resource name."""

    region: str
    function: str

    def resource_name(self, project_id: Optional[str]) -> str:
        if self.function.startswith("projects/"):
            return self.function
        if not project_id:
            raise ValidationError(
                f"no project configured to expand function name {self.function!r}; "
                "set GCP_PROJECT_ID or pass a full resource name"
            )
        return f"projects/{project_id}/locations/{self.region}/functions/{self.function}"


@dataclass
class Invocation:
    """Raw outcome of one call: the result payload, the function error text and the execution id."""

    payload: str
    error: str = ""
    execution_id: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


class FunctionClient:
    """Invokes functions of one region through the Cloud Functions API.

    One instance is built per scrape. No retries are attempted.
    """

    def __init__(self, region: str, project_id: Optional[str] = None, timeout: Optional[float] = None, api=None):
        self.region = region
        self.project_id = project_id
        self.timeout = timeout or None
        self._api = api

    @property
    def api(self):
        if self._api is None:
            try:
                self._api = functions_v1.CloudFunctionsServiceClient()
            except auth_exceptions.GoogleAuthError as e:
                raise InvocationError(f"failed to create Cloud Functions client: {e}")
        return self._api

    def resource_name(self, function: str) -> str:
        return Target(self.region, function).resource_name(self.project_id)

    def call(self, function: str) -> Invocation:
        name = self.resource_name(function)
        kwargs = {"name": name, "data": ""}
        if self.timeout:
            kwargs["timeout"] = self.timeout
        try:
            response = self.api.call_function(**kwargs)
        except gcp_exceptions.GoogleAPIError as e:
            raise InvocationError(f"function invoke failed for {name}: {e}")
        return Invocation(
            payload=response.result,
            error=response.error,
            execution_id=response.execution_id,
        )

    def invoke(self, function: str) -> str:
        """Call the function once and return its result payload.

        Raises InvocationError when the call fails or the function reports an error.
        """
        invocation = self.call(function)
        if not invocation.ok:
            raise InvocationError(f"function invoke error: {invocation.error}")
        logger.debug(f"function {function} execution id: {invocation.execution_id}")
        return invocation.payload

    def close(self) -> None:
        """Close the API transport, if one was opened."""
        if self._api is not None:
            self._api.transport.close()
            self._api = None


def default_project(configured: Optional[str] = None) -> Optional[str]:
    """Project from config, else from application default credentials."""
    if configured:
        return configured
    try:
        _, project_id = google.auth.default()
    except auth_exceptions.DefaultCredentialsError as e:
        logger.warning(f"no application default credentials: {e}")
        return None
    return project_id


class ProjectResolver:
    """Resolves the project once per process; a failed lookup is retried on the next call."""

    def __init__(self, configured: Optional[str] = None):
        self.configured = configured
        self._project: Optional[str] = None
        self._lock = threading.Lock()

    def resolve(self) -> Optional[str]:
        if self._project:
            return self._project
        with self._lock:
            if not self._project:
                self._project = default_project(self.configured)
        return self._project
