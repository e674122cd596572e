import io
from pathlib import Path

import pytest

from fsmviz.config import AppConfig, RenderConfig
from fsmviz.io import load_config, load_source
from fsmviz.issues import W_UNKNOWN_TARGET, W_UNRESOLVED_CALL, IssueConfig, IssueLog


def write_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_load_config_defaults_without_path():
    cfg = load_config(None)
    assert cfg == AppConfig()
    assert cfg.render.title == "FSM diagram"
    assert cfg.strict is False


def test_load_config_reads_yaml(tmp_path: Path):
    path = write_text(
        tmp_path / "fsmviz.yaml",
        "direction: lr\n"
        "theme: dark\n"
        "title: Order FSM\n"
        "strict: true\n"
        "ignore: [W_UNRESOLVED_CALL]\n"
        "escalate:\n"
        "  - W_UNKNOWN_TARGET\n",
    )
    cfg = load_config(path)
    assert cfg.render == RenderConfig(direction="LR", theme="dark", title="Order FSM")
    assert cfg.strict is True
    assert cfg.issues.ignore == frozenset({W_UNRESOLVED_CALL})
    assert cfg.issues.escalate == frozenset({W_UNKNOWN_TARGET})


def test_empty_config_file_is_default(tmp_path: Path):
    assert load_config(write_text(tmp_path / "empty.yaml", "")) == AppConfig()


def test_config_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")
    with pytest.raises(TypeError, match="must be a mapping"):
        load_config(write_text(tmp_path / "list.yaml", "- a\n- b\n"))
    with pytest.raises(ValueError, match="Failed to parse YAML"):
        load_config(write_text(tmp_path / "bad.yaml", "direction: [LR\n"))
    with pytest.raises(ValueError, match="unknown config key"):
        load_config(write_text(tmp_path / "typo.yaml", "directoin: LR\n"))


def test_config_value_validation():
    with pytest.raises(ValueError, match="direction must be one of"):
        AppConfig.from_mapping({"direction": "sideways"})
    with pytest.raises(TypeError, match="config.strict"):
        AppConfig.from_mapping({"strict": "yes"})
    with pytest.raises(TypeError, match="config.theme"):
        AppConfig.from_mapping({"theme": 3})
    with pytest.raises(ValueError, match="unknown issue code"):
        AppConfig.from_mapping({"ignore": ["W_NOPE"]})


def test_issue_log_applies_ignore_and_escalate():
    log = IssueLog(
        IssueConfig(
            ignore=frozenset({W_UNRESOLVED_CALL}),
            escalate=frozenset({W_UNKNOWN_TARGET}),
        )
    )
    log.warn(W_UNRESOLVED_CALL, "dropped")
    log.warn(W_UNKNOWN_TARGET, "escalated", line=7, hint="declare it")

    assert log.warnings == []
    assert [iss.code for iss in log.errors] == [W_UNKNOWN_TARGET]
    assert log.errors[0].render() == "line 7: escalated (hint: declare it)"


def test_load_source_reads_file_verbatim(tmp_path: Path):
    path = tmp_path / "fsm.scala"
    path.write_bytes("\ufeffobject State {}\n".encode("utf-8"))
    assert load_source(path) == "object State {}\n"


def test_load_source_stdin(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("when(A) {}"))
    assert load_source(None) == "when(A) {}"
    monkeypatch.setattr("sys.stdin", io.StringIO("when(B) {}"))
    assert load_source(Path("-")) == "when(B) {}"


def test_load_source_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_source(tmp_path / "nope.scala")
    with pytest.raises(ValueError, match="Not a file"):
        load_source(tmp_path)
