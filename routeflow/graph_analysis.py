"""
Structural checks on a route flow, built on NetworkX.

The graph store accepts any structure: edges may outlive the node they point
at, cycles are allowed and any node type may connect to any other. This
module only REPORTS such situations so the editor can warn; it never
changes the flow.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import networkx as nx

from routeflow.models import Edge, FlowData

logger = logging.getLogger(__name__)


@dataclass
class FlowReport:
    dangling_edges: List[Edge] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    entry_nodes: List[str] = field(default_factory=list)
    isolated_nodes: List[str] = field(default_factory=list)
    duplicate_edges: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.dangling_edges or self.cycles or self.duplicate_edges)

    def messages(self) -> List[str]:
        out = []
        for edge in self.dangling_edges:
            out.append(f"Edge {edge.id} points at a missing node ({edge.source} -> {edge.target})")
        for cycle in self.cycles:
            out.append("Cycle: " + " -> ".join(cycle + cycle[:1]))
        for source, target in self.duplicate_edges:
            out.append(f"Duplicate connection {source} -> {target}")
        return out


def to_digraph(flow: FlowData) -> nx.MultiDiGraph:
    """
    MultiDiGraph of the flow. Duplicate edges survive as parallel edges;
    dangling edges are left out (see dangling_edges()).
    """
    G = nx.MultiDiGraph()
    for node in flow.nodes:
        G.add_node(node.id, type=node.type, label=node.data.get("label", ""))
    for edge in flow.edges:
        if edge.source in G and edge.target in G:
            G.add_edge(edge.source, edge.target, key=edge.id)
    return G


def dangling_edges(flow: FlowData) -> List[Edge]:
    node_ids = {n.id for n in flow.nodes}
    return [e for e in flow.edges if e.source not in node_ids or e.target not in node_ids]


def find_cycles(flow: FlowData) -> List[List[str]]:
    return [list(c) for c in nx.simple_cycles(nx.DiGraph(to_digraph(flow)))]


def entry_nodes(flow: FlowData) -> List[str]:
    """Nodes with no incoming edge, in flow order."""
    G = to_digraph(flow)
    return [n.id for n in flow.nodes if G.in_degree(n.id) == 0]


def execution_order(flow: FlowData) -> Optional[List[str]]:
    """A topological order of node ids, or None when the flow has a cycle."""
    G = to_digraph(flow)
    try:
        return list(nx.topological_sort(G))
    except nx.NetworkXUnfeasible:
        return None


def analyze(flow: FlowData) -> FlowReport:
    G = to_digraph(flow)
    seen = set()
    duplicates = []
    for edge in flow.edges:
        pair = (edge.source, edge.target)
        if pair in seen and pair not in duplicates:
            duplicates.append(pair)
        seen.add(pair)

    report = FlowReport(
        dangling_edges=dangling_edges(flow),
        cycles=find_cycles(flow),
        entry_nodes=[n.id for n in flow.nodes if G.in_degree(n.id) == 0],
        isolated_nodes=[n for n in nx.isolates(G)],
        duplicate_edges=duplicates,
    )
    if report.dangling_edges:
        logger.warning(f"Flow has {len(report.dangling_edges)} dangling edge(s)")
    return report
