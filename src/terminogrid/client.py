"""HTTP client for a running terminogrid server.

Used by the command-line interface to list, start and stop containers
without going through the dashboard.
"""

from __future__ import annotations

import logging

import httpx

from terminogrid.domain.models import Container, Port

logger = logging.getLogger(__name__)


class DashboardClient:
    """Async client for the terminogrid HTTP API.

    Example usage::

        async with DashboardClient("http://localhost:8080") as client:
            for c in await client.list_containers():
                print(c.name, c.status)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def health(self) -> dict:
        """Return the server's health report.

        Raises:
            DashboardClientError: With ``status_code`` 503 if the server
                is up but its container runtime is not.
        """
        resp = await self._request("GET", "/api/health")
        return resp.json()

    async def list_containers(self) -> list[Container]:
        resp = await self._request("GET", "/api/containers")
        return [_container_from_wire(item) for item in resp.json().get("containers", [])]

    async def start(self, container_id: str) -> None:
        await self._request("POST", f"/api/containers/{container_id}/start")
        logger.debug("Started %s", container_id)

    async def stop(self, container_id: str) -> None:
        await self._request("POST", f"/api/containers/{container_id}/stop")
        logger.debug("Stopped %s", container_id)

    async def _request(self, method: str, path: str) -> httpx.Response:
        if self._client is None:
            raise DashboardClientError("Not connected to server")
        try:
            resp = await self._client.request(method, path)
        except httpx.HTTPError as e:
            raise DashboardClientError(f"{method} {path} failed: {e}") from e
        if resp.is_error:
            raise DashboardClientError(
                f"{method} {path} returned {resp.status_code}: {_detail(resp)}",
                status_code=resp.status_code,
            )
        return resp

    async def __aenter__(self) -> DashboardClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.disconnect()


def _detail(resp: httpx.Response) -> str:
    try:
        return str(resp.json().get("detail", resp.text))
    except ValueError:
        return resp.text


def _container_from_wire(item: dict) -> Container:
    ports = [
        Port(
            public_port=p.get("PublicPort"),
            private_port=p.get("PrivatePort"),
            protocol=p.get("Type", "tcp"),
        )
        for p in item.get("ports", [])
    ]
    return Container(
        id=item["id"],
        name=item.get("name", ""),
        image=item.get("image", ""),
        status=item.get("status", ""),
        labels=item.get("labels") or {},
        ports=ports,
    )


class DashboardClientError(Exception):
    """Raised when a request to the terminogrid server fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
