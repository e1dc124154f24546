"""Tests for the pipeflow command line."""

FLOW = """\
node=gen
command=printf 'b\\na\\n'

node=sort
command=sort

pipe=sorted
from=gen
to=sort
"""


def test_help(invoke):
    result = invoke(["--help"])
    assert result.exit_code == 0
    assert "FLOW_FILE" in result.output
    assert "--explain" in result.output


def test_missing_flow_file(invoke, tmp_path):
    result = invoke([tmp_path / "absent.flow", "sorted"])
    assert result.exit_code == 1
    assert "Error: Cannot read flow file" in result.output


def test_missing_action_argument(invoke, flow_file):
    result = invoke([flow_file(FLOW)])
    assert result.exit_code == 2


def test_unknown_action(invoke, flow_file):
    result = invoke([flow_file(FLOW), "ghost"])
    assert result.exit_code == 1
    assert "Error: Item 'ghost' not found" in result.output


def test_syntax_error(invoke, flow_file):
    path = flow_file("pipe=broken\nto=sort\n")
    result = invoke([path, "broken"])
    assert result.exit_code == 1
    assert "Error: line 2" in result.output


def test_cycle_is_reported(invoke, flow_file):
    path = flow_file("pipe=loop\nfrom=loop\nto=loop\n")
    result = invoke([path, "loop"])
    assert result.exit_code == 1
    assert "Cyclic reference" in result.output


def test_explain(invoke, flow_file):
    result = invoke([flow_file(FLOW), "sorted", "--explain"])
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "pipe sorted: gen | sort",
        "  from: node gen: printf 'b\\na\\n'",
        "  to: node sort: sort",
    ]


def test_invalid_chunk_size(invoke, flow_file):
    result = invoke([flow_file(FLOW), "sorted", "--chunk-size", "0"])
    assert result.exit_code == 2
    assert "Chunk size must be positive" in result.output


def test_invalid_chunk_size_from_environment(invoke, flow_file, monkeypatch):
    monkeypatch.setenv("PIPEFLOW_CHUNK_SIZE", "lots")
    result = invoke([flow_file(FLOW), "sorted"])
    assert result.exit_code == 2


def test_file_sink_flow(invoke, flow_file, tmp_path):
    target = tmp_path / "sorted.txt"
    path = flow_file(FLOW + f"\nfile=out\npath={target}\n\npipe=save\nfrom=sorted\nto=out\n")
    result = invoke([path, "save"])
    assert result.exit_code == 0
    assert target.read_text() == "a\nb\n"


def test_unconnected_file_action(invoke, flow_file, tmp_path):
    path = flow_file(f"file=out\npath={tmp_path / 'x'}\n")
    result = invoke([path, "out"])
    assert result.exit_code == 1
    assert "not connected" in result.output
