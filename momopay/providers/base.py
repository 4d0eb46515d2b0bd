import logging
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Dict, Any

import requests

logger = logging.getLogger(__name__)


class CollectionStatus(str, Enum):
    PENDING = 'PENDING'
    SUCCESSFUL = 'SUCCESSFUL'
    FAILED = 'FAILED'


class CollectionProvider(ABC):
    """Abstract base class for mobile-money collection (request-to-pay) providers"""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize provider with configuration

        Args:
            config: Provider-specific configuration. Common keys:
                http_timeout     - timeout for request-to-pay calls (seconds)
                status_timeout   - timeout for status queries (seconds)
                poll_attempts    - status checks made after a request-to-pay
                poll_interval    - delay between status checks (seconds)
        """
        self.config = config
        self.provider_name = self.__class__.__name__.replace('Provider', '').upper()

        self.http_timeout = float(config.get('http_timeout', 30))
        self.status_timeout = float(config.get('status_timeout', 5))
        self.poll_attempts = max(1, int(config.get('poll_attempts', 10)))
        self.poll_interval = float(config.get('poll_interval', 3))

        self._session = requests.Session()
        self._session.headers.update({'Content-Type': 'application/json'})

    def initiate_collection(
            self,
            amount: Decimal,
            phone_number: str,
            reference_id: str
    ) -> Dict[str, Any]:
        """
        Send a request-to-pay prompt and wait (bounded) for the payer's verdict.

        The status is polled at most ``poll_attempts`` times. A collection that
        is still PENDING after the last poll is reported as unsuccessful.

        Args:
            amount: Amount to collect
            phone_number: Payer MSISDN
            reference_id: Our transaction reference, used for status lookups

        Returns:
            Dict containing:
                - success: True only if the provider reported SUCCESSFUL
                - status: Last observed CollectionStatus value
                - reference_id: The reference used

        Raises:
            CollectionInitiationError: If the request-to-pay was rejected
        """
        self._request_to_pay(amount, phone_number, reference_id)

        status = CollectionStatus.PENDING
        for attempt in range(1, self.poll_attempts + 1):
            if self.poll_interval:
                time.sleep(self.poll_interval)

            try:
                status = self.check_collection_status(reference_id)
            except CollectionStatusError as exc:
                logger.warning(
                    '%s: status check %d/%d for %s failed - %s',
                    self.provider_name, attempt, self.poll_attempts, reference_id, exc
                )
                continue

            if status != CollectionStatus.PENDING:
                break

        return {
            'success': status == CollectionStatus.SUCCESSFUL,
            'status': status.value,
            'reference_id': reference_id,
        }

    @abstractmethod
    def _request_to_pay(self, amount: Decimal, phone_number: str, reference_id: str) -> None:
        """
        Submit the request-to-pay to the provider.

        Raises:
            CollectionInitiationError: If the provider did not accept the request
        """
        pass

    @abstractmethod
    def check_collection_status(self, reference_id: str) -> CollectionStatus:
        """
        Query the current status of a collection

        Args:
            reference_id: Reference passed to initiate_collection

        Returns:
            CollectionStatus

        Raises:
            CollectionStatusError: If the status could not be determined
        """
        pass

    def get_provider_name(self) -> str:
        """Get provider name"""
        return self.provider_name


class PaymentProviderError(Exception):
    """Base exception for provider errors"""
    pass


class CollectionInitiationError(PaymentProviderError):
    """Raised when a request-to-pay fails"""
    pass


class CollectionStatusError(PaymentProviderError):
    """Raised when a collection status lookup fails"""
    pass
