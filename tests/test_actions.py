"""Unit tests for console output and workflow outputs."""

import io

from rich.console import Console

from cdmconfig.actions import ActionConsole


def make_console(environ, verbose=False):
    buffer = io.StringIO()
    console = ActionConsole(console=Console(file=buffer, width=200), verbose=verbose, environ=environ)
    return console, buffer


class TestActionConsole:
    """Tests for ActionConsole."""

    def test_annotations_inside_actions(self):
        console, buffer = make_console({"GITHUB_ACTIONS": "true"})

        console.warning("careful")
        console.error("broken\nbadly")

        lines = buffer.getvalue().splitlines()
        assert lines == ["::warning::careful", "::error::broken%0Abadly"]

    def test_plain_output_outside_actions(self):
        console, buffer = make_console({})

        console.warning("careful")

        assert "Warning: careful" in buffer.getvalue()
        assert "::warning::" not in buffer.getvalue()

    def test_debug_is_hidden_unless_verbose(self):
        quiet, quiet_buffer = make_console({})
        loud, loud_buffer = make_console({}, verbose=True)

        quiet.debug("details")
        loud.debug("details")

        assert quiet_buffer.getvalue() == ""
        assert "details" in loud_buffer.getvalue()

    def test_outputs_are_appended_to_github_output(self, tmp_path):
        output_file = tmp_path / "github_output"
        console, _ = make_console({"GITHUB_OUTPUT": str(output_file)})

        console.set_output("changeset-number", "CS1")
        console.set_output("validation-results", '{"a": 1}\n{"b": 2}')

        lines = output_file.read_text().splitlines()
        assert lines[0].startswith("changeset-number<<ghadelimiter_")
        assert lines[1] == "CS1"
        assert lines[2] == lines[0].split("<<")[1]
        assert console.outputs == {
            "changeset-number": "CS1",
            "validation-results": '{"a": 1}\n{"b": 2}',
        }

    def test_set_failed_records_message(self):
        console, buffer = make_console({})

        console.set_failed("Upload failed")

        assert console.failure == "Upload failed"
        assert "Upload failed" in buffer.getvalue()
