from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Callable, Optional
from urllib.parse import urlencode

from stack_scaler.services.errors import ConnectivityError, SolrOperationError


logger = logging.getLogger(__name__)


def _param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def node_base_url(node_name: str) -> str:
    """`10.0.1.5:8983_solr` -> `http://10.0.1.5:8983/solr`."""

    host = node_name[: -len("_solr")] if node_name.endswith("_solr") else node_name
    return f"http://{host}/solr"


class SolrService:
    """Minimal Solr admin client over stdlib HTTP.

    Error responses from Solr still carry a JSON body with a `responseHeader`,
    so they are returned to the caller for success validation rather than raised.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 30.0,
        urlopen: Callable[..., Any] = urllib.request.urlopen,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._urlopen = urlopen

    def _get(self, *, base_url: str, path: str, params: dict[str, Any]) -> dict[str, Any]:
        query = urlencode({k: _param(v) for k, v in params.items() if v is not None})
        url = f"{base_url}/{path.lstrip('/')}?{query}"
        req = urllib.request.Request(url=url, method="GET", headers={"Accept": "application/json"})

        try:
            with self._urlopen(req, timeout=self._timeout) as resp:
                payload = resp.read() or b""
        except urllib.error.HTTPError as http_err:
            # HTTPError is also a valid response; Solr puts the failure in the body.
            payload = http_err.read() or b""
            logger.warning("Solr returned HTTP %s for %s", http_err.code, path)
        except (urllib.error.URLError, OSError) as exc:
            logger.exception("Solr request failed (path=%s)", path)
            raise ConnectivityError(f"Solr request failed: {path}") from exc

        try:
            parsed = json.loads(payload.decode("utf-8")) if payload else {}
        except ValueError as exc:
            raise SolrOperationError(f"Solr returned a non-JSON response for {path}") from exc
        if not isinstance(parsed, dict):
            raise SolrOperationError(f"Unexpected Solr response for {path}", payload={"body": parsed})
        return parsed

    def collections_api(self, action: str, **params: Any) -> dict[str, Any]:
        return self._get(
            base_url=self._base_url,
            path="admin/collections",
            params={**params, "action": action.upper(), "wt": "json"},
        )

    def update(self, collection: str, *, commit: bool = True, optimize: bool = True) -> dict[str, Any]:
        return self._get(
            base_url=self._base_url,
            path=f"{collection}/update",
            params={"commit": commit, "optimize": optimize, "wt": "json"},
        )

    def cores_api(self, node_name: str, action: str, **params: Any) -> dict[str, Any]:
        return self._get(
            base_url=node_base_url(node_name),
            path="admin/cores",
            params={**params, "action": action.upper(), "wt": "json"},
        )
