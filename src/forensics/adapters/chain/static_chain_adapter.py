from typing import Dict, List, Optional

from forensics.core.models import TokenBalance, Transaction
from forensics.ports.chain_data_port import ChainDataPort


class StaticChainAdapter(ChainDataPort):
    def __init__(self,
                 transactions: Optional[Dict[str, List[Transaction]]] = None,
                 balances: Optional[Dict[str, List[TokenBalance]]] = None,
                 ):
        self._txs = {k.lower(): list(v) for k, v in (transactions or {}).items()}
        self._balances = {k.lower(): list(v) for k, v in (balances or {}).items()}

    def fetch_transactions(self, address):
        items = list(self._txs.get(address.lower(), []))
        items.sort(key=lambda x: (x.timestamp, x.tx_hash))
        return items

    def fetch_token_balances(self, address):
        return list(self._balances.get(address.lower(), []))
