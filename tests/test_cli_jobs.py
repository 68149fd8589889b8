"""Tests for jobconsole jobs, kill, rename_job, handler and shell commands."""
from unittest.mock import patch

from click.testing import CliRunner

from jobconsole.cli import main


def _start(runner, cli_obj, *extra):
    args = ["handler", "-p", "generic/shell_reverse_tcp", "-H", "0.0.0.0", "-P", "4444", *extra]
    result = runner.invoke(main, args, obj=cli_obj)
    assert result.exit_code == 0, result.output
    return result


def test_handler_command(cli_obj, registry):
    runner = CliRunner()
    result = _start(runner, cli_obj)
    assert "Payload Handler Started as Job 0" in result.output
    assert registry.all_identifiers() == [0]


def test_handler_missing_port(cli_obj, registry):
    runner = CliRunner()
    result = runner.invoke(main, ["handler", "-p", "generic/shell_reverse_tcp", "-H", "10.0.0.1"], obj=cli_obj)
    assert result.exit_code == 1
    assert "You must select a port" in result.output
    assert "You must select a host" not in result.output
    assert "You must select a payload" not in result.output
    assert "Please supply missing arguments" in result.output
    assert registry.all_identifiers() == []


def test_handler_all_missing(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["handler", "-n", "name"], obj=cli_obj)
    assert result.exit_code == 1
    assert "You must select a payload" in result.output
    assert "You must select a port" in result.output
    assert "You must select a host" in result.output


def test_handler_no_args_shows_help(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["handler"], obj=cli_obj)
    assert result.exit_code == 1
    assert "Usage:" in result.output
    assert "-p <payload>" in result.output


def test_handler_help_flag(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["handler", "-h"], obj=cli_obj)
    assert result.exit_code == 0
    assert "Start a payload handler" in result.output


def test_handler_custom_name(cli_obj, registry):
    runner = CliRunner()
    _start(runner, cli_obj, "-n", "custom")
    assert registry.get(0).name == "custom"


def test_handler_unknown_encoder_warns(cli_obj, registry):
    runner = CliRunner()
    result = _start(runner, cli_obj, "-e", "bogus/encoder")
    assert "Invalid encoder name supplied: bogus/encoder" in result.output
    assert registry.all_identifiers() == [0]


def test_jobs_lists_by_default(cli_obj):
    runner = CliRunner()
    _start(runner, cli_obj, "-n", "listener")
    result = runner.invoke(main, ["jobs"], obj=cli_obj)
    assert result.exit_code == 0
    assert "listener" in result.output


def test_jobs_empty(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["jobs", "-l"], obj=cli_obj)
    assert result.exit_code == 0
    assert "No active jobs." in result.output


def test_jobs_kill_flags(cli_obj, registry):
    runner = CliRunner()
    for _ in range(3):
        _start(runner, cli_obj)
    result = runner.invoke(main, ["jobs", "-k", "0", "-k", "2"], obj=cli_obj)
    assert result.exit_code == 0
    assert "Stopping job 0" in result.output
    assert "Stopping job 2" in result.output
    assert registry.all_identifiers() == [1]


def test_jobs_kill_all(cli_obj, registry):
    runner = CliRunner()
    _start(runner, cli_obj)
    _start(runner, cli_obj)
    result = runner.invoke(main, ["jobs", "-K"], obj=cli_obj)
    assert result.exit_code == 0
    assert "Stopping all jobs..." in result.output
    assert "Stopping job 0" in result.output
    assert "Stopping job 1" in result.output
    assert registry.all_identifiers() == []


def test_jobs_malformed_range(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["jobs", "-k", "a-3"], obj=cli_obj)
    assert result.exit_code == 1
    assert "Please specify valid job identifier(s)" in result.output


def test_jobs_info(cli_obj):
    runner = CliRunner()
    _start(runner, cli_obj)
    result = runner.invoke(main, ["jobs", "-i", "0"], obj=cli_obj)
    assert result.exit_code == 0
    assert "Name: Handler: multi/handler" in result.output
    assert "LHOST" in result.output


def test_jobs_info_invalid(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["jobs", "-i", "4"], obj=cli_obj)
    assert result.exit_code == 1
    assert "Invalid Job ID: 4" in result.output


def test_kill_command_mixed(cli_obj, registry):
    runner = CliRunner()
    _start(runner, cli_obj)
    _start(runner, cli_obj)
    result = runner.invoke(main, ["kill", "0", "5", "1"], obj=cli_obj)
    assert result.exit_code == 1
    assert "Stopping job 0" in result.output
    assert "Stopping job 1" in result.output
    assert "Invalid job identifier: 5" in result.output
    assert registry.all_identifiers() == []


def test_kill_without_args_shows_help(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["kill"], obj=cli_obj)
    assert result.exit_code == 1
    assert "Equivalent to" in result.output


def test_rename_job(cli_obj, registry):
    runner = CliRunner()
    _start(runner, cli_obj)
    result = runner.invoke(main, ["rename_job", "0", "https listener"], obj=cli_obj)
    assert result.exit_code == 0
    assert "Job 0 updated" in result.output
    assert registry.get(0).name == "https listener"


def test_rename_job_missing(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["rename_job", "3", "x"], obj=cli_obj)
    assert result.exit_code == 1
    assert "Job 3 does not exist." in result.output


def test_rename_job_bad_arguments(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["rename_job", "zero", "x"], obj=cli_obj)
    assert result.exit_code == 1
    assert "rename_job takes exactly two arguments" in result.output
    assert "Rename a job that's currently active." in result.output


def test_version():
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "jobconsole" in result.output


def test_default_router_built_without_config():
    runner = CliRunner()
    with patch("jobconsole.utils.setup_logging"):
        result = runner.invoke(main, ["jobs"])
    assert result.exit_code == 0
    assert "No active jobs." in result.output


def test_shell_session_keeps_jobs(cli_obj, registry):
    runner = CliRunner()
    commands = "\n".join([
        "handler -p generic/shell_reverse_tcp -H 0.0.0.0 -P 4444 -n 'first one'",
        "jobs",
        "kill 7",
        "rename_job 0 renamed",
        "exit",
    ]) + "\n"
    result = runner.invoke(main, ["shell"], obj=cli_obj, input=commands)
    assert result.exit_code == 0, result.output
    assert "Payload Handler Started as Job 0" in result.output
    assert "first one" in result.output
    assert "Invalid job identifier: 7" in result.output
    assert registry.get(0).name == "renamed"


def test_shell_ends_on_eof(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["shell"], obj=cli_obj, input="jobs\n")
    assert result.exit_code == 0


def test_shell_reports_parse_errors(cli_obj):
    runner = CliRunner()
    result = runner.invoke(main, ["shell"], obj=cli_obj, input="rename_job 0 'unterminated\nexit\n")
    assert result.exit_code == 0
    assert "Could not parse command" in result.output


def test_shell_survives_init_failure(cli_obj, registry):
    runner = CliRunner()
    commands = "\n".join([
        "handler -p generic/shell_reverse_tcp -H 0.0.0.0 -P 4444",
        "init",
        "init",
        "kill 0",
        "exit",
    ]) + "\n"
    result = runner.invoke(main, ["shell"], obj=cli_obj, input=commands)
    assert result.exit_code == 0, result.output
    assert "Config already exists" in result.output
    assert "Stopping job 0" in result.output
    assert registry.all_identifiers() == []


def test_handler_blank_name_rejected(cli_obj, registry):
    runner = CliRunner()
    args = ["handler", "-p", "generic/shell_reverse_tcp", "-H", "0.0.0.0", "-P", "4444", "-n", "   "]
    result = runner.invoke(main, args, obj=cli_obj)
    assert result.exit_code == 1
    assert "Job name must not be empty" in result.output
    assert registry.all_identifiers() == []
