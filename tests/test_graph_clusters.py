import unittest
from decimal import Decimal

from forensics.core.enums import NodeRole, TxDirection
from forensics.core.models import GraphEdge, Transaction
from forensics.services.cluster_engine import assign_clusters, find_clusters
from forensics.services.graph_builder import build_graph

SUBJECT = "0xsubject"


def _tx(n: int, counterparty: str, direction=TxDirection.INCOMING, amount="1", token="ETH", **kw) -> Transaction:
    return Transaction(
        tx_hash=f"0x{n:04x}",
        direction=direction,
        token=token,
        amount=Decimal(amount),
        counterparty=counterparty,
        timestamp=1000 + n,
        **kw,
    )


def _edge(src: str, dst: str, value="1") -> GraphEdge:
    return GraphEdge(
        source=src,
        target=dst,
        value=Decimal(value),
        token="ETH",
        timestamp=0,
        tx_hash=f"{src}-{dst}",
        direction=TxDirection.OUTGOING,
    )


class GraphBuilderTests(unittest.TestCase):
    def test_star_graph_with_one_edge_per_transaction(self) -> None:
        txs = [
            _tx(1, "0xA", TxDirection.INCOMING, "5", "ETH"),
            _tx(2, "0xa", TxDirection.OUTGOING, "2", "USDC"),
            _tx(3, "0xb", TxDirection.INCOMING, "1"),
        ]
        graph = build_graph("0xSUBJECT", txs)

        self.assertEqual(graph.subject, SUBJECT)
        self.assertEqual(list(graph.nodes), [SUBJECT, "0xa", "0xb"])
        self.assertEqual(len(graph.edges), 3)

        a = graph.nodes["0xa"]
        self.assertEqual(a.role, NodeRole.COUNTERPARTY)
        self.assertEqual(a.total_volume, Decimal("7"))
        self.assertEqual(a.tx_count, 2)
        self.assertEqual(a.tokens, {"ETH", "USDC"})
        self.assertTrue(a.is_suspicious)      # both directions
        self.assertFalse(graph.nodes["0xb"].is_suspicious)

        subject = graph.nodes[SUBJECT]
        self.assertEqual(subject.tx_count, 3)
        self.assertEqual(subject.total_volume, Decimal("8"))
        self.assertFalse(subject.is_suspicious)

        first, second = graph.edges[0], graph.edges[1]
        self.assertEqual((first.source, first.target), ("0xa", SUBJECT))
        self.assertEqual((second.source, second.target), (SUBJECT, "0xa"))
        self.assertEqual(second.value, Decimal("2"))

    def test_counterparty_falls_back_to_from_address(self) -> None:
        txs = [_tx(1, "", from_address="0xC")]
        graph = build_graph(SUBJECT, txs)
        self.assertIn("0xc", graph.nodes)

    def test_self_transfers_and_blank_counterparties_are_skipped(self) -> None:
        graph = build_graph(SUBJECT, [_tx(1, SUBJECT), _tx(2, "")])
        self.assertEqual(list(graph.nodes), [SUBJECT])
        self.assertEqual(graph.edges, [])

    def test_empty_input(self) -> None:
        graph = build_graph(SUBJECT, None)
        self.assertEqual(list(graph.nodes), [SUBJECT])
        assign_clusters(graph)
        self.assertEqual(graph.cluster_count, 1)
        self.assertEqual(graph.cluster_assignment, {SUBJECT: 0})

    def test_high_volume_counterparty_is_suspicious(self) -> None:
        graph = build_graph(SUBJECT, [_tx(1, "0xwhale", amount="1500")])
        self.assertTrue(graph.nodes["0xwhale"].is_suspicious)


class ClusterEngineTests(unittest.TestCase):
    def test_star_is_one_cluster(self) -> None:
        txs = [_tx(1, "0xa"), _tx(2, "0xb", TxDirection.OUTGOING)]
        graph = build_graph("S", txs)
        result = assign_clusters(graph)

        self.assertEqual(result.count, 1)
        self.assertEqual(graph.cluster_count, 1)
        self.assertEqual(set(graph.cluster_assignment.values()), {0})
        self.assertEqual(graph.nodes["0xa"].cluster_id, 0)

    def test_disconnected_components_get_distinct_ids(self) -> None:
        nodes = ["a", "b", "c", "d", "e"]
        edges = [_edge("a", "b"), _edge("d", "c")]
        result = find_clusters(nodes, edges)

        self.assertEqual(result.count, 3)
        self.assertEqual(result.assignment["a"], result.assignment["b"])
        self.assertEqual(result.assignment["c"], result.assignment["d"])
        self.assertEqual(len({result.assignment["a"], result.assignment["c"], result.assignment["e"]}), 3)

    def test_ids_follow_node_order_and_are_deterministic(self) -> None:
        nodes = ["x", "y", "z"]
        edges = [_edge("z", "x")]
        first = find_clusters(nodes, edges)
        second = find_clusters(nodes, edges)
        self.assertEqual(first.assignment, {"x": 0, "z": 0, "y": 1})
        self.assertEqual(first.assignment, second.assignment)

    def test_edges_with_unknown_endpoints_are_ignored(self) -> None:
        result = find_clusters(["a", "b"], [_edge("a", "ghost"), _edge("ghost", "b")])
        self.assertEqual(result.count, 2)

    def test_dust_edges_below_threshold_do_not_join(self) -> None:
        nodes = ["s", "a", "b"]
        edges = [_edge("s", "a", "5"), _edge("b", "s", "0.001")]
        self.assertEqual(find_clusters(nodes, edges).count, 1)
        self.assertEqual(find_clusters(nodes, edges, min_edge_value=Decimal("0.01")).count, 2)


if __name__ == "__main__":
    unittest.main()
