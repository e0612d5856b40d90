"""Record Store API client.

This module defines a small client wrapper around the Record Store's
REST API using ``requests``.  It is used by the Sync Client for three
things only:

* :meth:`RecordStoreAPI.is_remote_available` – the one-off capability
  check performed at startup (``GET /health``).
* :meth:`RecordStoreAPI.fetch_collection` / :meth:`pull_all` – bulk
  reads of whole collections (``GET /api/v1/sync/{collection}``).
* ``push_*`` – best-effort replay of local mutations.

Every call goes through :meth:`_request`, which never raises for
transport or HTTP errors: it returns a ``(data, error)`` tuple and logs
the failure.  The only exception raised by this module is
``UnavailableError`` from :meth:`pull_all`, which the replica handles.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

import requests

from gym_desk_api.app.core.errors import UnavailableError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class RecordStoreAPI:
    """Client for the Record Store API."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 5,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Root URL of the server, e.g. ``http://localhost:8000``.
            api_key: Optional bearer token sent in the ``Authorization``
                header of every request.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            timeout: Transport timeout in seconds for every request.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self, method: str, path: str, *, params: Dict[str, Any] | None = None,
        json_body: Any | None = None
    ) -> Tuple[Optional[Any], Optional[Dict[str, Any]]]:
        """Perform an HTTP request to the API.

        Args:
            method: HTTP method (``GET``, ``POST``, ``PUT``, ``DELETE``).
            path: Path relative to :attr:`base_url` (e.g. ``/health``).
            params: Query parameters to include in the request.
            json_body: JSON body to send with the request.
        Returns:
            A tuple ``(data, error)``.  ``data`` is the ``data`` member of
            the success envelope and ``error`` is ``None``.  On failure
            ``data`` is ``None`` and ``error`` is a dictionary with keys
            ``status_code``, ``code`` and ``message``.
        """
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if not response.content:
                return None, None
            body = response.json()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            code, message = None, ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    error = err_json.get("error") or {}
                    code = error.get("code")
                    message = error.get("message") or err_json.get("detail") or str(err_json)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "code": code, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "code": "UNAVAILABLE", "message": str(exc)}
        if isinstance(body, dict) and "success" in body:
            if not body["success"]:
                error = body.get("error") or {}
                return None, {"status_code": response.status_code, "code": error.get("code"), "message": error.get("message", "")}
            return body.get("data"), None
        return body, None

    @staticmethod
    def _path(collection: str, record_id: Optional[str] = None, action: Optional[str] = None) -> str:
        path = f"{API_PREFIX}/{collection}"
        if record_id is not None:
            path += "/" + quote(str(record_id), safe="")
        if action:
            path += f"/{action}"
        return path

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def is_remote_available(self) -> bool:
        """Return True when the Record Store answers its health check."""
        data, error = self._request("GET", "/health")
        if error:
            return False
        return isinstance(data, dict) and data.get("status") == "ok"

    def fetch_collection(self, collection: str) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """Retrieve every record of ``collection``.

        Returns:
            A tuple ``(records, error)``.  ``records`` is empty on failure.
        """
        data, error = self._request("GET", f"{API_PREFIX}/sync/{collection}")
        if error:
            return [], error
        if isinstance(data, list):
            return data, None
        return [], {"status_code": None, "code": None, "message": f"Unexpected payload for {collection}"}

    def fetch_settings(self) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
        """Retrieve pricing and terms as ``{"pricing": ..., "terms_and_conditions": ...}``."""
        pricing, error = self._request("GET", f"{API_PREFIX}/settings/pricing")
        if error:
            return {}, error
        terms, error = self._request("GET", f"{API_PREFIX}/settings/terms")
        if error:
            return {}, error
        return {"pricing": pricing, "terms_and_conditions": (terms or {}).get("text")}, None

    def pull_all(self, collections: Iterable[str]) -> Dict[str, List[Dict[str, Any]]]:
        """Fetch several collections, raising ``UnavailableError`` on the first failure."""
        pulled: Dict[str, List[Dict[str, Any]]] = {}
        for collection in collections:
            records, error = self.fetch_collection(collection)
            if error:
                raise UnavailableError(
                    f"Could not pull {collection}: {error['message']}",
                    details=[{"field": collection, "message": error["message"]}],
                )
            pulled[collection] = records
        return pulled

    # ------------------------------------------------------------------
    # Best-effort pushes
    # ------------------------------------------------------------------
    def push_create(self, collection: str, record: Dict[str, Any]) -> Tuple[Optional[Any], Optional[Dict[str, Any]]]:
        return self._request("POST", self._path(collection), json_body=record)

    def push_update(
        self, collection: str, record_id: str, changes: Dict[str, Any]
    ) -> Tuple[Optional[Any], Optional[Dict[str, Any]]]:
        return self._request("PUT", self._path(collection, record_id), json_body=changes)

    def push_delete(self, collection: str, record_id: str) -> Tuple[Optional[Any], Optional[Dict[str, Any]]]:
        return self._request("DELETE", self._path(collection, record_id))

    def push_action(
        self, collection: str, record_id: str, action: str, body: Optional[Dict[str, Any]] = None,
        method: str = "POST",
    ) -> Tuple[Optional[Any], Optional[Dict[str, Any]]]:
        """Replay a record-level action such as ``checkin``, ``renew`` or ``sale``."""
        return self._request(method, self._path(collection, record_id, action), json_body=body)

    def push_settings(self, name: str, body: Dict[str, Any]) -> Tuple[Optional[Any], Optional[Dict[str, Any]]]:
        return self._request("PUT", f"{API_PREFIX}/settings/{name}", json_body=body)
