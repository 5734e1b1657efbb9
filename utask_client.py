"""UTASK API client.

This module defines a small client wrapper around the UTASK REST API.
It uses the ``requests`` library internally and exposes one method per
operation of the API, grouped by domain:

* authentication – :meth:`UtaskAPI.register`, :meth:`UtaskAPI.login`,
  :meth:`UtaskAPI.me`;
* services – listing, nearby search, posting, editing, deleting and
  favourites;
* proposals – sending proposals and the owner's accept, reject and
  counter decisions;
* notifications and the wallet.

Every method returns a tuple ``(data, error)``.  On success ``data`` is
the decoded JSON body and ``error`` is ``None``; on failure ``data`` is
``None`` and ``error`` is a dictionary with the keys ``status_code``
and ``message`` (taken from the API's ``{"error": ...}`` body).

After a successful :meth:`UtaskAPI.register` or :meth:`UtaskAPI.login`
the returned token is kept on the client and sent as a bearer token
with every later request.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Result = Tuple[Optional[Any], Optional[Dict[str, Any]]]


class UtaskAPI:
    """Client for interacting with the UTASK API."""

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        api_prefix: str = "/api",
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Base URL of the server, e.g. ``https://utask.example.com``.
            token: Optional access token obtained earlier.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            api_prefix: Path under which the API is mounted.
            timeout: Timeout in seconds for every request.
        """
        self.base_url = base_url.rstrip("/") + api_prefix
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Result:
        """Perform an HTTP request to the API.

        Args:
            method: HTTP method (``GET``, ``POST``, ``PUT``, ``DELETE``).
            path: Path relative to the API root (e.g. ``/services``).
            params: Query parameters; ``None`` values are dropped.
            json_body: JSON body to send with the request.
        Returns:
            A tuple ``(data, error)`` as described in the module docstring.
        """
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params or None,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error("API request failed (%s): %s", response.status_code, message)
            return None, {"status_code": response.status_code, "message": message}
        if response.content:
            return response.json(), None
        return None, None

    @staticmethod
    def _error_message(response: Any) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("error") or body.get("detail") or body)
        return str(body)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def _store_token(self, result: Result) -> Result:
        data, error = result
        if data and data.get("token"):
            self.token = data["token"]
        return data, error

    def register(
        self,
        name: str,
        email: str,
        password: str,
        city: Optional[str] = None,
        state: Optional[str] = None,
    ) -> Result:
        """Create an account and keep the returned token."""
        body = {"name": name, "email": email, "password": password, "city": city, "state": state}
        return self._store_token(self._request("POST", "/auth/register", json_body=body))

    def login(self, email: str, password: str) -> Result:
        return self._store_token(
            self._request("POST", "/auth/login", json_body={"email": email, "password": password})
        )

    def me(self) -> Result:
        return self._request("GET", "/auth/me")

    # ------------------------------------------------------------------
    # Categories and services
    # ------------------------------------------------------------------
    def list_categories(self) -> Result:
        return self._request("GET", "/categories")

    def list_services(
        self,
        *,
        category: Optional[int] = None,
        q: Optional[str] = None,
        location: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Result:
        """List services; the server lists ``pending`` ones unless ``status`` is given."""
        params = {
            "category": category,
            "q": q,
            "location": location,
            "status": status,
            "limit": limit,
            "offset": offset,
        }
        return self._request("GET", "/services", params=params)

    def create_service(self, payload: Dict[str, Any]) -> Result:
        return self._request("POST", "/services", json_body=payload)

    def get_service(self, service_id: Any) -> Result:
        return self._request("GET", f"/services/{service_id}")

    def update_service(self, service_id: Any, changes: Dict[str, Any]) -> Result:
        return self._request("PUT", f"/services/{service_id}", json_body=changes)

    def delete_service(self, service_id: Any) -> Result:
        return self._request("DELETE", f"/services/{service_id}")

    def nearby_services(self, lat: float, lng: float, radius: Optional[float] = None) -> Result:
        return self._request("GET", "/services/nearby", params={"lat": lat, "lng": lng, "radius": radius})

    def list_favorites(self) -> Result:
        return self._request("GET", "/services/favorites")

    def add_favorite(self, service_id: Any) -> Result:
        return self._request("POST", "/services/favorites", json_body={"serviceId": service_id})

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------
    def create_proposal(self, service_id: Any, price: float, message: Optional[str] = None) -> Result:
        return self._request(
            "POST",
            f"/services/{service_id}/proposals",
            json_body={"price": price, "message": message},
        )

    def list_proposals(self, service_id: Any) -> Result:
        return self._request("GET", f"/services/{service_id}/proposals")

    def accept_proposal(self, proposal_id: Any) -> Result:
        return self._request("POST", f"/proposals/{proposal_id}/accept")

    def reject_proposal(self, proposal_id: Any) -> Result:
        return self._request("POST", f"/proposals/{proposal_id}/reject")

    def counter_proposal(self, proposal_id: Any, price: float, message: Optional[str] = None) -> Result:
        return self._request(
            "POST",
            f"/proposals/{proposal_id}/counter",
            json_body={"price": price, "message": message},
        )

    # ------------------------------------------------------------------
    # Notifications and wallet
    # ------------------------------------------------------------------
    def list_notifications(
        self,
        *,
        unread: Optional[bool] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Result:
        params = {"unread": "true" if unread else None, "limit": limit, "offset": offset}
        return self._request("GET", "/notifications", params=params)

    def mark_notification_read(self, notification_id: Any) -> Result:
        return self._request("POST", f"/notifications/{notification_id}/read")

    def mark_all_notifications_read(self) -> Result:
        return self._request("POST", "/notifications/read-all")

    def get_wallet(self) -> Result:
        return self._request("GET", "/wallet")

    def list_transactions(
        self,
        *,
        type: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Result:
        return self._request("GET", "/wallet/transactions", params={"type": type, "limit": limit, "offset": offset})
