"""Client for the ArcGIS sharing REST API."""

from __future__ import annotations

import json
from typing import Any, BinaryIO
from urllib.parse import urlparse

import httpx

from orchestrator.logging import get_logger

from .errors import RemoteError

log = get_logger("gtfs_importer.client")


class ArcGISClient:
    """Thin wrapper over the portal endpoints the importer needs.

    The token is fetched once by `connect()`; after that the client is only
    read, so one instance can be shared by concurrently running tasks.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        *,
        referer: str = "https://www.arcgis.com",
        token_expiration_minutes: int = 60,
        timeout: float = 60.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        parsed = urlparse(host)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("host must include scheme and host")

        self.host = host.rstrip("/")
        self.username = username
        self._password = password
        self._referer = referer
        self._expiration = token_expiration_minutes
        self._token: str | None = None
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ArcGISClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _post(
        self,
        path: str,
        data: dict[str, Any],
        files: dict[str, Any] | None = None,
        *,
        auth: bool = True,
    ) -> dict[str, Any]:
        form = {k: v for k, v in data.items() if v is not None}
        form["f"] = "json"
        if auth:
            if self._token is None:
                raise RemoteError("Not connected: call connect() first")
            form["token"] = self._token

        url = f"{self.host}/{path.lstrip('/')}"
        try:
            response = self._client.post(url, data=form, files=files)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise RemoteError(
                f"{path}: HTTP {e.response.status_code}", code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise RemoteError(f"{path}: {e}") from e
        except ValueError as e:
            raise RemoteError(f"{path}: invalid JSON response") from e

        # The portal reports most failures with a 200 and an `error` member
        error = payload.get("error") if isinstance(payload, dict) else None
        if error:
            raise RemoteError(
                str(error.get("message") or "Unknown error"),
                code=error.get("code"),
                details=[str(d) for d in error.get("details") or []],
            )
        if isinstance(payload, dict) and payload.get("success") is False:
            raise RemoteError(f"{path}: request was not successful")
        return payload

    @staticmethod
    def _flag(value: bool) -> str:
        return "true" if value else "false"

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def connect(self) -> None:
        payload = self._post(
            "generateToken",
            {
                "username": self.username,
                "password": self._password,
                "referer": self._referer,
                "expiration": self._expiration,
            },
            auth=False,
        )
        token = payload.get("token")
        if not token:
            raise RemoteError("generateToken returned no token")
        self._token = token
        log.info("Connected to %s as %s", self.host, self.username)

    def create_group(self, title: str, access: str, description: str) -> dict[str, Any]:
        return self._post(
            "community/createGroup",
            {"title": title, "access": access, "description": description},
        )

    def add_item(
        self, title: str, type: str, tags: str, file: BinaryIO, filename: str | None = None
    ) -> dict[str, Any]:
        name = filename or getattr(file, "name", None) or title
        return self._post(
            f"content/users/{self.username}/addItem",
            {"title": title, "type": type, "tags": tags},
            files={"file": (str(name).rsplit("/", 1)[-1], file, "text/csv")},
        )

    def analyze(self, item_id: str, filetype: str) -> dict[str, Any]:
        return self._post(
            "content/features/analyze", {"itemId": item_id, "filetype": filetype}
        )

    def publish_item(
        self, item_id: str, filetype: str, publish_parameters: dict[str, Any]
    ) -> dict[str, Any]:
        return self._post(
            f"content/users/{self.username}/publish",
            {
                "itemId": item_id,
                "filetype": filetype,
                "publishParameters": json.dumps(publish_parameters),
            },
        )

    def share_item(
        self, item_id: str, groups: str, everyone: bool = True, org: bool = True
    ) -> dict[str, Any]:
        return self._post(
            f"content/users/{self.username}/items/{item_id}/share",
            {"groups": groups, "everyone": self._flag(everyone), "org": self._flag(org)},
        )
