from __future__ import annotations

import logging
from typing import Any

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from domain.transfers import TransferDirection
from domain.value_feed import FeedReading

logger = logging.getLogger(__name__)


class GatewayAPIError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class GatewayClient:
    """Client for the custody gateway: value feed rounds, asset metadata and transfers.

    Reads are retried on throttling and transient upstream errors. Transfers
    are POSTs and are never retried, a failed settlement is final.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
        retry_attempts: int = 5,
        retry_backoff_seconds: float = 0.5,
    ) -> None:
        if not base_url:
            msg = "base_url must be provided"
            raise ValueError(msg)
        if not api_key:
            msg = "api_key must be provided"
            raise ValueError(msg)

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

        retry = Retry(
            total=retry_attempts,
            backoff_factor=retry_backoff_seconds,
            status_forcelist={429, 502, 503},
            allowed_methods={"GET"},
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def latest_round(self, feed_id: str) -> FeedReading:
        if not feed_id:
            raise ValueError("feed_id must be provided")
        payload = self._request("GET", f"/feeds/{feed_id}/latest")
        return FeedReading(
            round_id=self._to_int(payload, "roundId"),
            answer=self._to_int(payload, "answer"),
            updated_at=self._to_int(payload, "updatedAt"),
            answered_in_round=self._to_int(payload, "answeredInRound"),
        )

    def feed_decimals(self, feed_id: str) -> int:
        if not feed_id:
            raise ValueError("feed_id must be provided")
        payload = self._request("GET", f"/feeds/{feed_id}")
        return self._to_int(payload, "decimals")

    def asset_precision(self, asset_id: str) -> int:
        if not asset_id:
            raise ValueError("asset_id must be provided")
        payload = self._request("GET", f"/assets/{asset_id}/metadata")
        return self._to_int(payload, "decimals")

    def transfer(self, *, direction: TransferDirection, account_id: str, asset_id: str, raw_amount: int) -> str:
        body = {
            "direction": direction.value,
            "account": account_id,
            "asset": asset_id,
            "amount": str(raw_amount),
        }
        payload = self._request("POST", "/transfers", json=body)
        status = payload.get("status")
        if status != "settled":
            raise GatewayAPIError(f"Transfer not settled: status={status}", payload=payload)
        transfer_id = payload.get("transferId")
        return str(transfer_id) if transfer_id is not None else ""

    def _request(self, method: str, path: str, *, json: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                json=json,
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            resp = exc.response
            message, payload_err = self._extract_error(resp)
            raise GatewayAPIError(message, status_code=resp.status_code, payload=payload_err) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise GatewayAPIError("Gateway request failed", status_code=status_code) from exc

        try:
            payload: dict[str, Any] = response.json()
        except ValueError as exc:
            raise GatewayAPIError("Gateway returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload, dict):
            raise GatewayAPIError("Gateway returned unexpected payload type", payload=payload)

        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            raise GatewayAPIError(error["message"], status_code=response.status_code, payload=payload)

        return payload

    @staticmethod
    def _to_int(payload: dict[str, Any], field: str) -> int:
        value = payload.get(field)
        # Amounts and answers may exceed JSON number precision, so strings are accepted.
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise GatewayAPIError(f"Gateway payload field {field} is missing or not an integer", payload=payload)
        try:
            return int(value)
        except ValueError as exc:
            raise GatewayAPIError(f"Gateway payload field {field} is not an integer", payload=payload) from exc

    @staticmethod
    def _extract_error(response: Response) -> tuple[str, Any]:
        message = "Gateway request failed"
        try:
            payload = response.json()
            error = payload.get("error") if isinstance(payload, dict) else None
            if isinstance(error, dict) and error.get("message"):
                message = error["message"]
        except ValueError:
            payload = response.text
        return message, payload


__all__ = ["GatewayAPIError", "GatewayClient"]
