from typing import Any

import httpx
import structlog

from bandsheets.exceptions import TransportError
from bandsheets.imports.schemas import (
    DuplicateReport,
    ExportBundle,
    ExportResponse,
    ImportOptions,
    ImportResponse,
)
from bandsheets.sheets.schemas import SheetSummary

logger = structlog.get_logger()

DEFAULT_TIMEOUT_S = 30.0


class BandSheetsClient:
    """Async HTTP client for the band sheets API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=httpx.Timeout(timeout),
        )
        self._token = token

    async def __aenter__(self) -> "BandSheetsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def set_token(self, token: str | None) -> None:
        self._token = token

    async def login(self, email: str, password: str) -> str:
        response = await self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        self._raise_for_status(response)
        self._token = response.json()["access_token"]
        return self._token

    async def import_sheets(
        self, records: list[Any], options: ImportOptions | None = None
    ) -> ImportResponse:
        payload: dict[str, Any] = {"sheets": records}
        if options is not None:
            payload["importOptions"] = options.model_dump(by_alias=True)

        response = await self._request("POST", "/api/import-export/import", json=payload)
        if response.status_code == 400:
            body = response.json()
            return ImportResponse(success=False, error=body.get("error") or body.get("message"))
        self._raise_for_status(response)
        return ImportResponse.model_validate(response.json())

    async def check_duplicates(self, records: list[Any]) -> DuplicateReport:
        response = await self._request(
            "POST", "/api/import-export/check-duplicates", json={"sheets": records}
        )
        self._raise_for_status(response)
        return DuplicateReport.model_validate(response.json())

    async def list_sheets(self) -> list[SheetSummary]:
        response = await self._request("GET", "/api/sheets/")
        self._raise_for_status(response)
        return [SheetSummary.model_validate(item) for item in response.json()]

    async def export_sheets(self) -> ExportBundle:
        response = await self._request("GET", "/api/import-export/export")
        self._raise_for_status(response)
        return ExportResponse.model_validate(response.json()).data

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("api_request_failed", method=method, path=path, error=str(exc))
            raise TransportError(f"Could not reach the band sheets server: {exc}") from exc

        if response.status_code >= 500:
            logger.warning(
                "api_server_error", method=method, path=path, status=response.status_code
            )
            raise TransportError(
                f"Band sheets server error ({response.status_code})",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("error") or response.reason_phrase
        raise TransportError(
            f"Request rejected ({response.status_code}): {message}",
            status_code=response.status_code,
        )
