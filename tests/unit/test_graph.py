from fsmviz.analysis.declarations import extract_declarations
from fsmviz.analysis.helpers import extract_local_functions, resolve_clauses
from fsmviz.analysis.lexer import tokenize
from fsmviz.analysis.transitions import extract_transitions
from fsmviz.constants import ENTRY, STOP, UNKNOWN
from fsmviz.graph import ResolvedEdge, build_graph
from fsmviz.issues import W_UNKNOWN_SOURCE, W_UNKNOWN_TARGET, IssueLog


def graph_for(text: str):
    stream = tokenize(text)
    table = extract_declarations(stream)
    log = IssueLog()
    transitions = extract_transitions(stream, table, log)
    clauses = resolve_clauses(transitions, extract_local_functions(stream, table), log)
    return build_graph(table, transitions, clauses, log), log


def test_nodes_and_edges_in_declaration_and_discovery_order():
    graph, log = graph_for(
        """
        object St {
          case object A extends S
          case object B extends S
          case object C extends S
        }
        class M extends FSM[S, D] {
          when(St.B) {
            case Event(Next, _) => goto(St.C)
            case Event(Ping, _) => stay()
          }
          when(St.C) {
            case Event(Done, _) => stop()
            case Event(Crash, _) => stop(FSM.Failure("x"))
          }
        }
        """
    )
    assert graph.nodes == (ENTRY, "St.A", "St.B", "St.C", STOP)
    assert graph.entry_state == "St.B"
    assert graph.edges == (
        ResolvedEdge(ENTRY, "St.B", ""),
        ResolvedEdge("St.B", "St.C", "Next"),
        ResolvedEdge("St.B", "St.B", "Ping"),
        ResolvedEdge("St.C", STOP, "Done (stop)"),
        ResolvedEdge("St.C", STOP, "Crash (stop: failure)"),
    )
    assert log.issues == []


def test_entry_falls_back_to_first_declared_state():
    graph, _ = graph_for(
        """
        object St { case object First extends S; case object Second extends S }
        class M extends FSM[S, D]
        """
    )
    assert graph.entry_state == "St.First"
    assert graph.edges == (ResolvedEdge(ENTRY, "St.First", ""),)
    assert graph.transition_edges() == ()


def test_undeclared_endpoints_are_dropped_with_warnings():
    graph, log = graph_for(
        """
        object St { case object A extends S; case object B extends S }
        class M extends FSM[S, D] {
          when(Ghost) { case Event(Boo, _) => goto(St.A) }
          when(St.A) {
            case Event(Go, _) => goto(St.Nowhere)
            case Event(Ok, _) => goto(St.B)
          }
        }
        """
    )
    # `Ghost` is not declared, so the entry state is the first declared source.
    assert graph.entry_state == "St.A"
    assert graph.transition_edges() == (ResolvedEdge("St.A", "St.B", "Ok"),)
    assert [iss.code for iss in log.issues] == [W_UNKNOWN_SOURCE, W_UNKNOWN_TARGET]


def test_unknown_node_only_when_used():
    graph, _ = graph_for(
        """
        object St { case object A extends S }
        class M extends FSM[S, D] {
          when(St.A) { case Event(Go, _) => mystery() }
        }
        """
    )
    assert graph.nodes == (ENTRY, "St.A", UNKNOWN, STOP)
    assert graph.edges[-1] == ResolvedEdge("St.A", UNKNOWN, "Go")
