"""
Lead Source Interface
Abstract base class for external producers of lead rows
"""
from abc import ABC, abstractmethod
from typing import List

from powerdialer.domain.models.dialer_reports import ReconciliationRow


class LeadSource(ABC):
    """Abstract base class for reconciliation sources"""

    @property
    @abstractmethod
    def batch_name(self) -> str:
        """Tag stored on leads inserted from this source"""
        pass

    @property
    def requires_business_name(self) -> bool:
        """Whether rows without a business name are skipped"""
        return False

    @abstractmethod
    def fetch_rows(self) -> List[ReconciliationRow]:
        """
        Fetch all rows from the source.

        Raises:
            UpstreamUnavailableError: Source could not be reached
            InvalidArgumentError: Source content is malformed
        """
        pass
