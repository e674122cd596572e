from fsmviz.config import RenderConfig
from fsmviz.constants import ENTRY, NO_TRANSITIONS_MARKUP, STOP, UNKNOWN
from fsmviz.diagrams.state_diagram import display_names, gen_state_diagram
from fsmviz.graph import Graph, ResolvedEdge
from fsmviz.mermaid_fmt import mm_alias_base, mm_text


def make_graph(names: dict[str, str], edges: list[tuple[str, str, str]], unknown: bool = False) -> Graph:
    nodes = [ENTRY, *names]
    if unknown:
        nodes.append(UNKNOWN)
    nodes.append(STOP)
    first = next(iter(names))
    return Graph(
        nodes=tuple(nodes),
        edges=(ResolvedEdge(ENTRY, first, ""), *(ResolvedEdge(*e) for e in edges)),
        entry_state=first,
        local_names=dict(names),
    )


def test_basic_rendering():
    graph = make_graph(
        {"State.Idle": "Idle", "State.Busy": "Busy"},
        [("State.Idle", "State.Busy", "Start"), ("State.Busy", STOP, "Done (stop)")],
    )
    assert gen_state_diagram(graph) == (
        "stateDiagram-v2\n"
        "  Idle\n"
        "  Busy\n"
        "  [*] --> Idle\n"
        "  Idle --> Busy : Start\n"
        "  Busy --> [*] : Done (stop)\n"
    )


def test_clashing_local_names_use_quoted_qualified_names():
    graph = make_graph(
        {"Left.A": "A", "Right.A": "A", "end": "end"},
        [("Left.A", "Right.A", "Swap"), ("Right.A", "end", "Finish")],
    )
    assert display_names(graph) == {"Left.A": "Left.A", "Right.A": "Right.A", "end": "end"}
    assert gen_state_diagram(graph) == (
        "stateDiagram-v2\n"
        '  state "Left.A" as Left_A\n'
        '  state "Right.A" as Right_A\n'
        '  state "end" as s_end\n'
        "  [*] --> Left_A\n"
        "  Left_A --> Right_A : Swap\n"
        "  Right_A --> s_end : Finish\n"
    )


def test_unknown_node_and_config_lines():
    graph = make_graph({"A": "A", "Unknown": "Unknown"}, [("A", UNKNOWN, "Go")], unknown=True)
    markup = gen_state_diagram(graph, RenderConfig(direction="LR", theme="dark"))
    assert markup.splitlines() == [
        '%%{init:{"theme":"dark"}}%%',
        "stateDiagram-v2",
        "  direction LR",
        "  A",
        "  Unknown",
        '  state "?" as Unknown_2',
        "  [*] --> A",
        "  A --> Unknown_2 : Go",
    ]


def test_no_transitions_sentinel():
    graph = make_graph({"A": "A"}, [])
    assert gen_state_diagram(graph) == NO_TRANSITIONS_MARKUP
    assert "NoTransitions" in NO_TRANSITIONS_MARKUP


def test_labels_are_escaped():
    graph = make_graph({"A": "A"}, [("A", "A", 'msg: Map[String, "x"]; <y>')])
    assert gen_state_diagram(graph).splitlines()[-1] == (
        "  A --> A : " + mm_text('msg: Map[String, "x"]; <y>', escape_semicolon=True)
    )
    assert "#quot;" in gen_state_diagram(graph)


def test_alias_base():
    assert mm_alias_base("State.Idle") == "State_Idle"
    assert mm_alias_base("1st") == "s_1st"
    assert mm_alias_base("...") == "anon"


def test_semicolon_escape_keeps_entities_intact():
    assert mm_text("n > 10 && n < 20; done", escape_semicolon=True) == (
        "n #gt; 10 #amp;#amp; n #lt; 20#59; done"
    )
    assert mm_text('say "hi"', escape_semicolon=True) == "say #quot;hi#quot;"
