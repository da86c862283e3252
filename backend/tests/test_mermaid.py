"""Abstraction graph and Mermaid rendering tests."""

from repodoc.generation.mermaid import (
    build_abstraction_graph,
    find_unconnected_abstractions,
    render_flowchart,
    sanitize_edge_label,
    sanitize_node_label,
)
from repodoc.generation.models import Abstraction, Relationship

ABSTRACTIONS = [Abstraction("Router", ""), Abstraction('The "Store"', ""), Abstraction("Config", "")]


def test_flowchart_nodes_and_edges():
    relationships = [Relationship(0, 1, "Saves records"), Relationship(1, 2, "Reads")]

    diagram = render_flowchart(ABSTRACTIONS, relationships)

    assert diagram.split("\n") == [
        "flowchart TD",
        '    A0["Router"]',
        '    A1["The Store"]',
        '    A2["Config"]',
        '    A0 -- "Saves records" --> A1',
        '    A1 -- "Reads" --> A2',
    ]


def test_out_of_range_relationships_are_dropped():
    diagram = render_flowchart(ABSTRACTIONS, [Relationship(0, 7, "Ghost")])

    assert "Ghost" not in diagram
    assert "A7" not in diagram


def test_parallel_relationships_keep_every_label():
    relationships = [Relationship(0, 1, "Writes"), Relationship(0, 1, "Reads")]

    graph = build_abstraction_graph(ABSTRACTIONS, relationships)
    diagram = render_flowchart(ABSTRACTIONS, relationships)

    assert graph.edges[0, 1]["labels"] == ["Writes", "Reads"]
    assert '"Writes"' in diagram and '"Reads"' in diagram


def test_edge_labels_are_single_line_and_short():
    label = sanitize_edge_label('Sends "many"\nvery long messages to everyone')

    assert "\n" not in label
    assert '"' not in label
    assert len(label) == 30
    assert label.endswith("...")


def test_node_label_drops_quotes():
    assert sanitize_node_label('a "b" c') == "a b c"


def test_find_unconnected_abstractions():
    assert find_unconnected_abstractions(ABSTRACTIONS, [Relationship(0, 1, "x")]) == [2]
    assert find_unconnected_abstractions(ABSTRACTIONS, []) == [0, 1, 2]
    # Self-loops count as a connection
    assert find_unconnected_abstractions(ABSTRACTIONS, [Relationship(2, 2, "x")]) == [0, 1]
