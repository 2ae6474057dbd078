"""HTTP client for the ServiceNow DevOps Config (CDM) APIs."""

from typing import Any
from urllib.parse import urlencode

import requests
from requests.auth import HTTPBasicAuth

from cdmconfig.actions import ActionConsole
from cdmconfig.config import Credentials
from cdmconfig.errors import RemoteStateError, TransportError

JSON_HEADERS = {"Content-Type": "application/json"}
TEXT_HEADERS = {"Content-Type": "text/plain"}


class CdmClient:
    """
    Thin wrapper over a requests session bound to one instance and one set of credentials.

    Every call returns the decoded JSON body. Failures raise TransportError carrying
    the status code and body, or a "no response" marker when nothing came back.
    """

    def __init__(
        self,
        instance_url: str,
        credentials: Credentials,
        console: ActionConsole | None = None,
        session: requests.Session | None = None,
        timeout: float = 60,
    ):
        self.instance_url = instance_url.rstrip("/")
        self.console = console or ActionConsole()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(
            credentials.username, credentials.password.get_secret_value()
        )

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._request("GET", path, params=params)

    def post(
        self,
        path: str,
        data: str | bytes | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return self._request("POST", path, params=params, data=data, headers=headers)

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: str | bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self.instance_url}{path}"
        params = _clean_params(params)
        display_url = f"{url}?{urlencode(params)}" if params else url
        if isinstance(data, str):
            data = data.encode("utf-8")

        self.console.info(f"Request: {display_url} initiating.")
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                data=data,
                headers={**TEXT_HEADERS, **(headers or {})},
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransportError(f"No response received. Error: {e}") from e
        except requests.RequestException as e:
            raise TransportError(f"Error: {e}") from e

        if not response.ok:
            raise TransportError(
                f"Status code: {response.status_code}. Response data: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        self.console.info(f"Response: {display_url} received.")

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON in response from {display_url}: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e


def _clean_params(params: dict[str, Any] | None) -> dict[str, str]:
    """Drop unset values and render booleans the way the API expects them."""
    if not params:
        return {}
    cleaned = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = str(value)
    return cleaned


def require_field(response: Any, path: str) -> Any:
    """Read a dotted field such as ``result.upload_id`` from a decoded response."""
    value = response
    for key in path.split("."):
        if not isinstance(value, dict) or value.get(key) is None:
            raise RemoteStateError(
                f"Unexpected response: '{path}' is missing. Response data: {response}"
            )
        value = value[key]
    return value
