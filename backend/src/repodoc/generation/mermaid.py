# backend/src/repodoc/generation/mermaid.py
"""Abstraction graph and its Mermaid rendering."""

from __future__ import annotations

from typing import Sequence

import networkx as nx

from repodoc.constants.generation import MAX_EDGE_LABEL_LENGTH
from repodoc.generation.models import Abstraction, Relationship


def build_abstraction_graph(
    abstractions: Sequence[Abstraction],
    relationships: Sequence[Relationship],
) -> nx.DiGraph:
    """Directed graph with one node per abstraction index and one edge per relationship.

    Nodes carry a "name" attribute, edges a "labels" list (several
    relationships may connect the same pair).
    """
    graph = nx.DiGraph()
    for index, abstraction in enumerate(abstractions):
        graph.add_node(index, name=abstraction.name)

    for rel in relationships:
        if not (graph.has_node(rel.from_index) and graph.has_node(rel.to_index)):
            continue
        if graph.has_edge(rel.from_index, rel.to_index):
            graph.edges[rel.from_index, rel.to_index]["labels"].append(rel.label)
        else:
            graph.add_edge(rel.from_index, rel.to_index, labels=[rel.label])
    return graph


def find_unconnected_abstractions(
    abstractions: Sequence[Abstraction],
    relationships: Sequence[Relationship],
) -> list[int]:
    """Indices of abstractions that appear in no relationship."""
    graph = build_abstraction_graph(abstractions, relationships)
    return sorted(node for node in graph.nodes if graph.degree(node) == 0)


def sanitize_node_label(name: str) -> str:
    """Node labels are quoted, so embedded quotes are dropped."""
    return name.replace('"', "")


def sanitize_edge_label(label: str, max_length: int = MAX_EDGE_LABEL_LENGTH) -> str:
    """Single-line, unquoted edge label truncated with "..."."""
    result = label.replace('"', "").replace("\n", " ")
    if len(result) > max_length:
        result = result[: max_length - 3] + "..."
    return result


def render_flowchart(
    abstractions: Sequence[Abstraction],
    relationships: Sequence[Relationship],
) -> str:
    """Render the abstraction graph as a Mermaid "flowchart TD".

    Nodes are "A<i>" for abstraction index i. Relationships with an index
    outside the abstraction list are left out.

    Returns:
        Mermaid source without the surrounding code fence.
    """
    graph = build_abstraction_graph(abstractions, relationships)
    lines = ["flowchart TD"]
    for node, data in graph.nodes(data=True):
        lines.append(f'    A{node}["{sanitize_node_label(data["name"])}"]')

    # Relationship order is preserved, so walk the list rather than the graph
    for rel in relationships:
        if graph.has_edge(rel.from_index, rel.to_index):
            label = sanitize_edge_label(rel.label)
            lines.append(f'    A{rel.from_index} -- "{label}" --> A{rel.to_index}')
    return "\n".join(lines)
