from __future__ import annotations

import re
from typing import Any, Dict, Optional, Tuple

import httpx
import typer

from cli.config import CLIConfig

_FILENAME_PATTERN = re.compile(r'filename="?([^";]+)"?')


class ApiClient:
    """Minimal HTTP client for the telemetry service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_fleet(self) -> Dict[str, Any]:
        return self._get_json("/fleet")

    def get_boat(self, boat_id: str) -> Dict[str, Any]:
        return {
            "boat_id": boat_id,
            "status": self._get_json(f"/boats/{boat_id}/status").get("status"),
            "accuracy": self._get_json(f"/boats/{boat_id}/accuracy"),
            "latest": self._get_json(f"/boats/{boat_id}/latest"),
        }

    def get_validation(self, boat_id: str) -> Optional[Dict[str, Any]]:
        return self._get_json(f"/boats/{boat_id}/validation")

    def download_export(self) -> Tuple[str, bytes]:
        """Return the suggested filename and CSV body of the reading export."""
        response = self._get("/export")
        disposition = response.headers.get("content-disposition", "")
        match = _FILENAME_PATTERN.search(disposition)
        filename = match.group(1) if match else "sensor-data.csv"
        return filename, response.content

    def _get_json(self, path: str) -> Any:
        return self._get(path).json()

    def _get(self, path: str) -> httpx.Response:
        try:
            response = self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
