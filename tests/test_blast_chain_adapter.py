import unittest
from decimal import Decimal
from unittest import mock

from forensics.adapters.chain.blast_chain_adapter import BlastChainAdapter
from forensics.core.enums import TxDirection
from forensics.core.errors import DataSourceError

WALLET = "0xWallet"


def _resp(payload, status: int = 200):
    resp = mock.MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    return resp


class BlastChainAdapterTests(unittest.TestCase):
    def _adapter(self, *payloads, **kw) -> BlastChainAdapter:
        session = mock.MagicMock()
        session.get.side_effect = [_resp(p) for p in payloads]
        self.session = session
        kw.setdefault("max_retries", 1)
        return BlastChainAdapter(base_url="https://blast.test/builder", requests_per_sec=100, session=session, **kw)

    def test_transfers_are_normalized(self) -> None:
        adapter = self._adapter(
            {
                "tokenTransfers": [
                    {
                        "transactionHash": "0x1",
                        "blockTimestamp": "2024-01-01T00:00:00Z",
                        "fromAddress": "0xWALLET",
                        "toAddress": ["0xDest"],
                        "value": "1500000",
                        "contractDecimals": "6",
                        "contractSymbols": "USDC",
                        "contractAddress": "0xUSDC",
                    },
                    {
                        "transactionHash": "0x2",
                        "blockTimestamp": "2024-01-01T01:00:00",
                        "fromAddress": "0xSource",
                        "toAddress": "0xwallet",
                        "value": "2000000000000000000",
                        "contractSymbol": "ETH",
                    },
                ],
            }
        )
        out_tx, in_tx = adapter.fetch_transactions(WALLET)

        self.assertEqual(out_tx.direction, TxDirection.OUTGOING)
        self.assertEqual(out_tx.counterparty, "0xdest")
        self.assertEqual(out_tx.amount, Decimal("1.5"))
        self.assertEqual(out_tx.token, "USDC")
        self.assertEqual(out_tx.timestamp, 1704067200)
        self.assertEqual(out_tx.contract_address, "0xusdc")

        self.assertEqual(in_tx.direction, TxDirection.INCOMING)
        self.assertEqual(in_tx.counterparty, "0xsource")
        self.assertEqual(in_tx.amount, Decimal("2"))
        self.assertEqual(in_tx.timestamp, 1704070800)
        self.assertIsNone(in_tx.contract_address)

        _, kwargs = self.session.get.call_args
        self.assertEqual(kwargs["params"], {"walletAddress": WALLET})

    def test_pages_are_followed(self) -> None:
        row = {"transactionHash": "0x1", "fromAddress": "0xa", "toAddress": "0xwallet", "value": "0"}
        adapter = self._adapter(
            {"tokenTransfers": [row], "nextPageKey": "p2"},
            {"tokenTransfers": [dict(row, transactionHash="0x2")]},
        )
        txs = adapter.fetch_transactions(WALLET)

        self.assertEqual([t.tx_hash for t in txs], ["0x1", "0x2"])
        _, kwargs = self.session.get.call_args
        self.assertEqual(kwargs["params"]["pageKey"], "p2")

    def test_missing_timestamp_uses_fetch_time(self) -> None:
        row = {"transactionHash": "0x1", "fromAddress": "0xa", "toAddress": "0xwallet", "value": "1"}
        adapter = self._adapter({"tokenTransfers": [row]})
        with mock.patch("forensics.adapters.chain.blast_chain_adapter.time.time", return_value=1234.5):
            (tx,) = adapter.fetch_transactions(WALLET)
        self.assertEqual(tx.timestamp, 1234)

    def test_zero_balances_are_dropped(self) -> None:
        adapter = self._adapter(
            {
                "tokenBalances": [
                    {"contractSymbols": "STRK", "walletBalance": "3000000000000000000"},
                    {"contractSymbols": "DUST", "walletBalance": "0"},
                    {"contractSymbols": "USDC", "walletBalance": "250", "contractDecimals": "2"},
                ],
            }
        )
        balances = adapter.fetch_token_balances(WALLET)

        self.assertEqual([b.symbol for b in balances], ["STRK", "USDC"])
        self.assertEqual(balances[0].balance, Decimal("3"))
        self.assertEqual(balances[0].decimals, 18)
        self.assertEqual(balances[1].balance, Decimal("2.5"))

    def test_errors_raise_data_source_error(self) -> None:
        adapter = self._adapter(["not", "a", "dict"])
        with self.assertRaises(DataSourceError):
            adapter.fetch_transactions(WALLET)

    def test_missing_base_url(self) -> None:
        with mock.patch("forensics.adapters.chain.blast_chain_adapter.BLAST_PROJECT_ID", None):
            adapter = BlastChainAdapter(session=mock.MagicMock())
        with self.assertRaises(DataSourceError):
            adapter.fetch_token_balances(WALLET)


if __name__ == "__main__":
    unittest.main()
