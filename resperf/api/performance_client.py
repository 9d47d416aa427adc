"""
HTTP clients for the metrics and inventory backends.

Thin urllib wrappers: the performance manager answers PromQL query and
query_range calls, the configuration manager serves the resource inventory.
Transport failures surface as BackendError.
"""

import json
import logging
import ssl
from typing import Any, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from pydantic import ValidationError

from .schemas import APIPromQL, APIPromQLSingle, Inventory, Node, QueryRangeParams, Resource
from .queries.timeseries import to_range_response, to_single_response

logger = logging.getLogger("resperf.api")


class BackendError(Exception):
    """A backend could not be reached or answered with an error."""

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.url = url

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


class BackendHttpClient:
    """JSON over HTTP against one backend base URL."""

    def __init__(self, server_base: str, timeout: int = 10, verify_ssl: bool = True):
        """
        Args:
            server_base: Base URL of the backend (e.g., http://metrics:9090/api/v1)
            timeout: Request timeout in seconds
            verify_ssl: Verify server certificates for HTTPS URLs
        """
        self.server_base = server_base.rstrip("/")
        self.timeout = timeout
        self._ssl_context = self._create_ssl_context(verify_ssl)

    def _create_ssl_context(self, verify: bool) -> ssl.SSLContext:
        ssl_context = ssl.create_default_context()
        if not verify:
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        return ssl_context

    def _send(self, req: Request) -> Dict[str, Any]:
        url = req.full_url
        ssl_context = self._ssl_context if url.startswith("https://") else None
        try:
            with urlopen(req, timeout=self.timeout, context=ssl_context) as resp:
                raw = resp.read().decode("utf-8")
        except HTTPError as e:
            raise BackendError(f"{req.get_method()} {url} failed: HTTP {e.code}", status=e.code, url=url) from e
        except (URLError, OSError) as e:
            raise BackendError(f"{req.get_method()} {url} failed: {e}", url=url) from e

        try:
            return json.loads(raw) if raw else {}
        except json.JSONDecodeError as e:
            raise BackendError(f"{req.get_method()} {url} returned invalid JSON", url=url) from e

    def get_json(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Make a GET request.

        Raises:
            BackendError: On HTTP, connection or decoding errors
        """
        url = f"{self.server_base}{endpoint}"
        if params:
            url = f"{url}?{urlencode(params)}"
        req = Request(url, headers={"Accept": "application/json"}, method="GET")
        return self._send(req)

    def post_form(self, endpoint: str, form: Dict[str, str]) -> Dict[str, Any]:
        """
        Make a form-encoded POST request.

        Raises:
            BackendError: On HTTP, connection or decoding errors
        """
        url = f"{self.server_base}{endpoint}"
        body = urlencode(form).encode("utf-8")
        hdrs = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        req = Request(url, data=body, headers=hdrs, method="POST")
        return self._send(req)


class PerformanceClient(BackendHttpClient):
    """Performance manager (PromQL) client."""

    def query_range(self, params: QueryRangeParams) -> Optional[APIPromQL]:
        """POST /query_range. A malformed body comes back as None."""
        logger.debug(f"query_range step={params.step} start={params.start} end={params.end}")
        return to_range_response(self.post_form("/query_range", params.to_form()))

    def query(self, query: str, time: Optional[str] = None) -> Optional[APIPromQLSingle]:
        """GET /query for an instant vector. A malformed body comes back as None."""
        params = {"query": query}
        if time:
            params["time"] = time
        return to_single_response(self.get_json("/query", params))


class InventoryClient(BackendHttpClient):
    """Configuration manager client for the resource inventory."""

    def _validate(self, model, payload: Dict[str, Any], what: str):
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise BackendError(f"Invalid {what} payload: {e.error_count()} validation errors") from e

    def get_resources(self) -> Inventory:
        return self._validate(Inventory, self.get_json("/resources"), "resources")

    def get_node(self, node_id: str) -> Node:
        return self._validate(Node, self.get_json(f"/nodes/{quote(node_id, safe='')}"), "node")

    def get_resource(self, resource_id: str) -> Resource:
        return self._validate(Resource, self.get_json(f"/resources/{quote(resource_id, safe='')}"), "resource")
