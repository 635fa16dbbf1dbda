"""Native network status to unified status mapping"""

import logging
from typing import Mapping, Optional

from paidmada.core.payments.model.paynetwork import Network
from paidmada.core.payments.model.paymentstatus import TransactionStatus

logger = logging.getLogger(__name__)


class StatusMapper:
    """
    Maps one network's native status vocabulary to TransactionStatus.

    Lookup is case-insensitive. Missing or unknown tokens resolve to PENDING
    and emit a warning so new upstream codes show up in the logs.
    """

    def __init__(self, network: Network, table: Mapping[str, TransactionStatus]):
        self.network = network
        self._table = {key.casefold(): status for key, status in table.items()}

    def map(self, native_status: Optional[str]) -> TransactionStatus:
        """
        Get the unified status for a native status token

        Args:
            native_status: Status string or code as sent by the network

        Returns:
            TransactionStatus, PENDING if the token is unknown
        """
        if native_status is None or native_status == "":
            return TransactionStatus.PENDING

        status = self._table.get(str(native_status).casefold())
        if status is None:
            logger.warning(f"[STATUS_MAPPER] Unmapped {self.network.value} status '{native_status}', defaulting to pending")
            return TransactionStatus.PENDING
        return status
