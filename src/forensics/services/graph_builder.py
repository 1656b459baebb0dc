from __future__ import annotations

from typing import Optional, Sequence

from forensics.core.enums import NodeRole, TxDirection
from forensics.core.models import GraphEdge, GraphModel, GraphNode, Transaction


def build_graph(subject: str, transactions: Optional[Sequence[Transaction]]) -> GraphModel:
    """
    Fold a wallet's transactions into a star-shaped value-flow graph.

    - Nodes: the subject first, then counterparties in first-seen order
    - Edges: one per transaction, never merged
    - Direction: counterparty -> subject for incoming, subject -> counterparty for outgoing
    """
    subj = subject.lower()
    graph = GraphModel(subject=subj)
    _ensure_node(graph, subj, NodeRole.SUBJECT)

    for tx in transactions or ():
        cp = _counterparty_of(tx, subj)
        if cp is None:
            continue

        node = _ensure_node(graph, cp, NodeRole.COUNTERPARTY)
        _accumulate(node, tx)
        _accumulate(graph.nodes[subj], tx)

        incoming = tx.direction is TxDirection.INCOMING
        graph.edges.append(
            GraphEdge(
                source=cp if incoming else subj,
                target=subj if incoming else cp,
                value=tx.amount,
                token=tx.token,
                timestamp=tx.timestamp,
                tx_hash=tx.tx_hash,
                direction=tx.direction,
            )
        )

    return graph


# -------------------------
# Helpers
# -------------------------

def _counterparty_of(tx: Transaction, subject: str) -> Optional[str]:
    cp = (tx.counterparty or tx.from_address or tx.to_address or "").lower()
    if not cp or cp == subject:
        return None
    return cp


def _ensure_node(graph: GraphModel, address: str, role: NodeRole) -> GraphNode:
    node = graph.nodes.get(address)
    if node is None:
        node = GraphNode(id=address, role=role)
        graph.nodes[address] = node
    return node


def _accumulate(node: GraphNode, tx: Transaction) -> None:
    node.total_volume += tx.amount
    node.tx_count += 1
    if tx.token:
        node.tokens.add(tx.token)
    node.directions.add(tx.direction)
