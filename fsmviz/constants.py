# fsmviz/constants.py
from __future__ import annotations

# Synthetic graph nodes. None of these can collide with a declared state:
# declared ids are Scala identifiers (optionally dotted).
ENTRY = "[*]start"
STOP = "[*]stop"
UNKNOWN = "?unknown"

DIAGRAM_HEADER = "stateDiagram-v2"

# Emitted instead of an empty diagram; the view layer keys off `NoTransitions`.
NO_TRANSITIONS_MARKUP = (
    "stateDiagram-v2\n"
    "  NoTransitions : No transitions found\n"
)

EMPTY_INPUT_MESSAGE = "Enter Akka FSM code to see the diagram"

PARSE_ERROR_PREFIX = "Parse error: "

UNKNOWN_LABEL = "?"

DIRECTIONS: tuple[str, ...] = ("TB", "LR", "BT", "RL")

# FSM base classes whose first type argument names the state type.
FSM_BASE_TYPES: frozenset[str] = frozenset(
    {
        "FSM",
        "AbstractFSM",
        "AbstractLoggingFSM",
        "LoggingFSM",
        "PersistentFSM",
        "AbstractPersistentFSM",
        "PersistentFSMBase",
    }
)

# Words that cannot appear as the callee of a local helper call.
NON_CALL_WORDS: frozenset[str] = frozenset(
    {
        "if",
        "else",
        "match",
        "case",
        "new",
        "val",
        "var",
        "def",
        "return",
        "throw",
        "try",
        "catch",
        "finally",
        "while",
        "for",
        "yield",
        "do",
        "this",
        "super",
        "true",
        "false",
        "null",
        "log",
        "sender",
        "self",
        "context",
        "println",
        "Event",
        "StateTimeout",
        "using",
        "replying",
        "forMax",
    }
)

# Mermaid stateDiagram keywords that cannot be used as bare state ids.
MERMAID_RESERVED: frozenset[str] = frozenset(
    {"state", "note", "end", "direction", "classDef", "class", "style", "as", "left", "right", "of"}
)

TOKEN_CACHE_SIZE = 32
