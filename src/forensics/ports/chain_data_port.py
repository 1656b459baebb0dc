from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from forensics.core.models import TokenBalance, Transaction


class ChainDataPort(ABC):
    """
    Abstract Class for fetching a wallet's normalized history.

    Implementations return transactions with direction inferred, amounts
    decimal-adjusted and timestamps parsed; the engine trusts them as given.
    """

    @abstractmethod
    def fetch_transactions(self, address: str) -> List[Transaction]:
        raise NotImplementedError

    @abstractmethod
    def fetch_token_balances(self, address: str) -> List[TokenBalance]:
        raise NotImplementedError
