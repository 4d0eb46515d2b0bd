"""
Airtel Money Provider
Based on the Airtel Africa Open API (Collection).

Supported flows
---------------
Collection (USSD push)
    POST /merchant/v1/payments/                  (transaction.id = our reference)
    GET  /standard/v1/payments/{ref}             (status poll)

Authentication
    POST /auth/oauth2/token   (client_credentials)

Required config keys
--------------------
    client_id, client_secret

Optional config keys
--------------------
    base_url   - default https://openapiuat.airtel.africa
    country    - default UG
    currency   - default UGX
"""

import logging
import time
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from momopay.providers.base import (
    CollectionProvider,
    CollectionStatus,
    CollectionInitiationError,
    CollectionStatusError,
)

logger = logging.getLogger(__name__)

# data.transaction.status values
_STATUS_MAP: Dict[str, CollectionStatus] = {
    "TS":      CollectionStatus.SUCCESSFUL,   # Transaction success
    "SUCCESS": CollectionStatus.SUCCESSFUL,
    "TF":      CollectionStatus.FAILED,       # Transaction failed
    "FAILED":  CollectionStatus.FAILED,
    "TE":      CollectionStatus.FAILED,       # Transaction expired
    "TIP":     CollectionStatus.PENDING,      # Transaction in progress
    "TA":      CollectionStatus.PENDING,      # Transaction ambiguous
    "PENDING": CollectionStatus.PENDING,
}


class AirtelProvider(CollectionProvider):
    """Airtel Money collection adapter."""

    _EP_TOKEN    = "/auth/oauth2/token"
    _EP_PAYMENTS = "/merchant/v1/payments/"
    _EP_STATUS   = "/standard/v1/payments/"

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)

        self.client_id     = config.get("client_id") or ""
        self.client_secret = config.get("client_secret") or ""
        self.base_url      = (config.get("base_url") or "https://openapiuat.airtel.africa").rstrip("/")
        self.country       = config.get("country") or "UG"
        self.currency      = config.get("currency") or "UGX"

        if not self.client_id or not self.client_secret:
            raise ValueError("AirtelProvider: 'client_id' and 'client_secret' are required")

        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0

    def _request_to_pay(self, amount: Decimal, phone_number: str, reference_id: str) -> None:
        payload = {
            "reference": reference_id,
            "subscriber": {
                "country":  self.country,
                "currency": self.currency,
                "msisdn":   self._normalise_phone(phone_number),
            },
            "transaction": {
                "amount":   float(amount),
                "country":  self.country,
                "currency": self.currency,
                "id":       reference_id,
            },
        }

        try:
            resp = self._session.post(
                f"{self.base_url}{self._EP_PAYMENTS}",
                json=payload,
                headers=self._headers(CollectionInitiationError),
                timeout=self.http_timeout,
            )
        except requests.RequestException as exc:
            raise CollectionInitiationError(f"AirtelProvider: network error - {exc}") from exc

        if not resp.ok:
            raise CollectionInitiationError(
                f"AirtelProvider: payment request rejected (HTTP {resp.status_code}) - {resp.text[:300]}"
            )

        data = self._json(resp, CollectionInitiationError)
        # Airtel can answer 200 with an unsuccessful body
        status = data.get("status")
        if isinstance(status, dict) and not status.get("success", True):
            message = status.get("message", "unknown error")
            raise CollectionInitiationError(f"AirtelProvider: payment request rejected - {message}")

        logger.info("AirtelProvider: collection request accepted for %s", reference_id)

    def check_collection_status(self, reference_id: str) -> CollectionStatus:
        try:
            resp = self._session.get(
                f"{self.base_url}{self._EP_STATUS}{reference_id}",
                headers=self._headers(CollectionStatusError),
                timeout=self.status_timeout,
            )
        except requests.RequestException as exc:
            raise CollectionStatusError(f"AirtelProvider: network error - {exc}") from exc

        if not resp.ok:
            raise CollectionStatusError(
                f"AirtelProvider: status query failed (HTTP {resp.status_code}) - {resp.text[:300]}"
            )

        data = self._json(resp, CollectionStatusError)
        transaction = (data.get("data") or {}).get("transaction") or {}
        raw_status = transaction.get("status")
        if raw_status is None and isinstance(data.get("status"), str):
            raw_status = data["status"]
        raw_status = str(raw_status or "").upper()
        logger.debug("AirtelProvider: %s status %s", reference_id, raw_status)

        status = _STATUS_MAP.get(raw_status)
        if status is None:
            raise CollectionStatusError(f"AirtelProvider: unknown status '{raw_status}'")
        return status

    # Internal helpers

    def _headers(self, error_cls) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._get_access_token(error_cls)}",
            "X-Country":     self.country,
            "X-Currency":    self.currency,
        }

    def _get_access_token(self, error_cls=CollectionInitiationError) -> str:
        if self._access_token and time.time() < self._token_expiry:
            return self._access_token

        try:
            resp = self._session.post(
                f"{self.base_url}{self._EP_TOKEN}",
                json={
                    "client_id":     self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type":    "client_credentials",
                },
                timeout=self.status_timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise error_cls(f"AirtelProvider: failed to obtain access token - {exc}") from exc

        self._access_token = data.get("access_token", "")
        expires_in = int(data.get("expires_in", 180))
        self._token_expiry = time.time() + max(expires_in - 30, 0)
        return self._access_token

    @staticmethod
    def _json(resp: requests.Response, error_cls) -> Dict[str, Any]:
        try:
            return resp.json()
        except ValueError as exc:
            raise error_cls("AirtelProvider: response is not JSON") from exc

    @staticmethod
    def _normalise_phone(phone: str) -> str:
        """
        Airtel expects the national number without country code or leading 0.

        Accepts: +256752123456, 256752123456, 0752123456, 752123456
        """
        phone = str(phone).strip().replace(" ", "").replace("-", "")
        if phone.startswith("+"):
            phone = phone[1:]
        if phone.startswith("256"):
            phone = phone[3:]
        if phone.startswith("0"):
            phone = phone[1:]
        return phone
