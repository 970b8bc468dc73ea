# api_client.py
from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Optional
from urllib.parse import quote, urlencode

from . import settings


class RundeckError(Exception):
    """Raised when a Rundeck API request fails."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


def rundeck_version(info: dict) -> str:
    """Pull system.rundeck.version out of a system/info response."""
    system = info.get("system") if isinstance(info, dict) else None
    rundeck = system.get("rundeck") if isinstance(system, dict) else None
    version = rundeck.get("version") if isinstance(rundeck, dict) else None
    return version or "Unknown version"


class RundeckClient:
    """HTTP client for the parts of the Rundeck API rdedit uses."""

    def __init__(self, base_url: str, token: str, timeout: float = settings.HTTP_TIMEOUT):
        """
        Initialize API client.

        Args:
            base_url: Rundeck server URL (e.g., "https://rundeck.example.com")
            token: API token sent as X-Rundeck-Auth-Token
            timeout: Socket timeout in seconds for every request
        """
        # Ensure base_url doesn't end with /
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _url(self, api_version: str, path: str, query: Optional[dict] = None) -> str:
        url = f"{self.base_url}/api/{api_version}/{path.lstrip('/')}"
        if query:
            url += "?" + urlencode(query)
        return url

    def _request(
        self,
        method: str,
        url: str,
        body: Optional[str] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Full request URL
            body: Optional text body, sent as UTF-8
            headers: Optional additional headers

        Returns:
            Parsed JSON response as dictionary ({"raw": text} if not JSON)

        Raises:
            RundeckError: If the request fails; carries status and body
        """
        req_headers = {
            "X-Rundeck-Auth-Token": self.token,
            "Accept": "application/json",
        }
        if headers:
            req_headers.update(headers)

        req_data = body.encode("utf-8") if body is not None else None
        req = urllib.request.Request(url, data=req_data, headers=req_headers, method=method)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                response_data = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            raise RundeckError(
                f"HTTP {e.code}: {e.reason}", status=e.code, body=error_body
            ) from e
        except urllib.error.URLError as e:
            raise RundeckError(f"Network error: {e.reason}") from e
        except OSError as e:
            # socket timeouts surface as plain OSError subclasses
            raise RundeckError(f"Network error: {e}") from e

        if not response_data:
            return {}
        try:
            parsed = json.loads(response_data)
        except json.JSONDecodeError:
            return {"raw": response_data}
        return parsed if isinstance(parsed, dict) else {"result": parsed}

    def system_info(self) -> dict:
        """GET /api/40/system/info; used to test a connection."""
        return self._request("GET", self._url(settings.INFO_API_VERSION, "system/info"))

    def import_jobs(self, project: str, yaml_text: str) -> dict:
        """
        Upload a YAML job list to a project.

        Identity fields are removed server-side too (uuidOption=remove) and
        existing jobs with the same name/group are updated (dupeOption=update).
        """
        url = self._url(
            settings.IMPORT_API_VERSION,
            f"project/{quote(project, safe='')}/jobs/import",
            {"uuidOption": "remove", "dupeOption": "update"},
        )
        return self._request(
            "POST",
            url,
            body=yaml_text,
            headers={"Content-Type": "application/yaml"},
        )
