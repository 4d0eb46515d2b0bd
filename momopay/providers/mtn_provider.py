"""
MTN Mobile Money Provider
Based on the MTN MoMo Open API (Collection product).

Supported flows
---------------
Request to pay (collection)
    POST /collection/v1_0/requesttopay          (X-Reference-Id = our reference)
    GET  /collection/v1_0/requesttopay/{ref}    (status poll)

Authentication
    POST /collection/token/   (Basic auth: API user id + API key)
    Tokens are cached in-memory and refreshed automatically on expiry.

Required config keys
--------------------
    user_id             - API user (UUID) provisioned for the collection product
    api_key             - API key for that user
    subscription_key    - Ocp-Apim-Subscription-Key of the collection product

Optional config keys
--------------------
    base_url            - default https://sandbox.momodeveloper.mtn.com
    target_environment  - "sandbox" (default) | "mtnuganda" | ...
    currency            - EUR in sandbox, UGX in production
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

# requesttopay "status" values
_STATUS_MAP: Dict[str, CollectionStatus] = {
    "PENDING":    CollectionStatus.PENDING,
    "SUCCESSFUL": CollectionStatus.SUCCESSFUL,
    "FAILED":     CollectionStatus.FAILED,
    "REJECTED":   CollectionStatus.FAILED,
    "TIMEOUT":    CollectionStatus.FAILED,
}


class MTNProvider(CollectionProvider):
    """MTN MoMo collection adapter."""

    _EP_TOKEN          = "/collection/token/"
    _EP_REQUEST_TO_PAY = "/collection/v1_0/requesttopay"

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)

        self.user_id            = config.get("user_id") or ""
        self.api_key            = config.get("api_key") or ""
        self.subscription_key   = config.get("subscription_key") or ""
        self.base_url           = (config.get("base_url") or "https://sandbox.momodeveloper.mtn.com").rstrip("/")
        self.target_environment = config.get("target_environment") or "sandbox"
        self.currency           = config.get("currency") or "EUR"

        if not self.user_id or not self.api_key or not self.subscription_key:
            raise ValueError("MTNProvider: 'user_id', 'api_key' and 'subscription_key' are required")

        # Token cache
        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0

    def _request_to_pay(self, amount: Decimal, phone_number: str, reference_id: str) -> None:
        payload = {
            "amount":     str(amount),
            "currency":   self.currency,
            "externalId": reference_id,
            "payer": {
                "partyIdType": "MSISDN",
                "partyId":     self._normalise_phone(phone_number),
            },
            "payerMessage": "Subscription payment",
            "payeeNote":    "Subscription payment",
        }
        headers = self._headers(CollectionInitiationError)
        headers["X-Reference-Id"] = reference_id

        try:
            resp = self._session.post(
                f"{self.base_url}{self._EP_REQUEST_TO_PAY}",
                json=payload,
                headers=headers,
                timeout=self.http_timeout,
            )
        except requests.RequestException as exc:
            raise CollectionInitiationError(f"MTNProvider: network error - {exc}") from exc

        # 202 Accepted is the only success answer
        if resp.status_code != 202:
            raise CollectionInitiationError(
                f"MTNProvider: requesttopay rejected (HTTP {resp.status_code}) - {resp.text[:300]}"
            )

        logger.info("MTNProvider: request-to-pay accepted for %s", reference_id)

    def check_collection_status(self, reference_id: str) -> CollectionStatus:
        try:
            resp = self._session.get(
                f"{self.base_url}{self._EP_REQUEST_TO_PAY}/{reference_id}",
                headers=self._headers(CollectionStatusError),
                timeout=self.status_timeout,
            )
        except requests.RequestException as exc:
            raise CollectionStatusError(f"MTNProvider: network error - {exc}") from exc

        if not resp.ok:
            raise CollectionStatusError(
                f"MTNProvider: status query failed (HTTP {resp.status_code}) - {resp.text[:300]}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise CollectionStatusError("MTNProvider: status response is not JSON") from exc

        raw_status = str(data.get("status", "")).upper()
        logger.debug("MTNProvider: %s status %s", reference_id, raw_status)

        status = _STATUS_MAP.get(raw_status)
        if status is None:
            raise CollectionStatusError(f"MTNProvider: unknown status '{raw_status}'")
        return status

    # Internal helpers

    def _headers(self, error_cls) -> Dict[str, str]:
        return {
            "Authorization":             f"Bearer {self._get_access_token(error_cls)}",
            "X-Target-Environment":      self.target_environment,
            "Ocp-Apim-Subscription-Key": self.subscription_key,
        }

    def _get_access_token(self, error_cls=CollectionInitiationError) -> str:
        """Return a valid access token, refreshing if expired."""
        if self._access_token and time.time() < self._token_expiry:
            return self._access_token

        try:
            resp = self._session.post(
                f"{self.base_url}{self._EP_TOKEN}",
                auth=(self.user_id, self.api_key),
                headers={"Ocp-Apim-Subscription-Key": self.subscription_key},
                timeout=self.status_timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise error_cls(f"MTNProvider: failed to obtain access token - {exc}") from exc

        self._access_token = data.get("access_token", "")
        # Refresh a minute before the advertised expiry
        expires_in = int(data.get("expires_in", 3600))
        self._token_expiry = time.time() + expires_in - 60

        logger.debug("MTNProvider: access token refreshed (expires in %ds)", expires_in)
        return self._access_token

    @staticmethod
    def _normalise_phone(phone: str) -> str:
        """
        Normalise a phone number to MTN's expected MSISDN format (256XXXXXXXXX).

        Accepts: +256772123456, 0772123456, 256772123456, 772123456
        """
        phone = str(phone).strip().replace(" ", "").replace("-", "")
        if phone.startswith("+"):
            phone = phone[1:]
        if phone.startswith("0"):
            phone = "256" + phone[1:]
        if not phone.startswith("256"):
            phone = "256" + phone
        return phone
