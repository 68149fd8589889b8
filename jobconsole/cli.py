"""
CLI interface for jobconsole.

Provides commands to list, inspect, stop and rename background jobs and to
launch payload handlers as jobs. Jobs live in the registry of the running
process, so `jobconsole shell` keeps one session (and its registry) alive
across commands.
"""

import shlex
import sys

import click

from jobconsole import __version__
from jobconsole.config import ConsoleConfig
from jobconsole.errors import CatalogError
from jobconsole.handler import HandlerOptions
from jobconsole.router import ERROR, LINE, STATUS, WARNING, CommandResult, CommandRouter, JobsOptions
from jobconsole.utils import (
    print_error,
    print_line,
    print_renderable,
    print_status,
    print_warning,
)


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

_PRINTERS = {
    STATUS: print_status,
    ERROR: print_error,
    WARNING: print_warning,
    LINE: print_line,
}


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="jobconsole")
@click.pass_context
def main(ctx):
    """
    jobconsole - Background job control console.

    Lists, inspects, stops and renames running jobs, and launches payload
    handlers as jobs.
    """
    from jobconsole.config import load_config
    from jobconsole.errors import ConfigError
    from jobconsole.utils import setup_logging

    ctx.ensure_object(dict)
    # Nested invocations from the shell reuse the session
    if "config" in ctx.obj or "router" in ctx.obj:
        return

    try:
        config = load_config()
    except (FileNotFoundError, ConfigError) as e:
        # Defaults are enough for every command; init writes a config file
        ctx.obj["config_error"] = str(e)
        config = ConsoleConfig()

    ctx.obj["config"] = config
    setup_logging(config.log_level, config.log_format, config.get_log_file_path())


def _get_router(ctx) -> CommandRouter:
    obj = ctx.ensure_object(dict)
    if "router" not in obj:
        config = obj.get("config") or ConsoleConfig()
        try:
            obj["router"] = CommandRouter.create_default(
                config, local_input=sys.stdin, local_output=sys.stdout
            )
        except CatalogError as e:
            raise click.ClickException(str(e))
    return obj["router"]


def _emit(ctx, result: CommandResult) -> None:
    """Print a CommandResult and exit 1 if the command failed."""
    for diagnostic in result.diagnostics:
        _PRINTERS[diagnostic.level](diagnostic.message)
    for renderable in result.renderables:
        print_renderable(renderable)
    if result.show_help:
        click.echo(ctx.get_help())
    if not result.ok:
        ctx.exit(1)


@main.command("jobs")
@click.option("-l", "list_jobs", is_flag=True, help="List all running jobs.")
@click.option("-v", "verbose", is_flag=True, help="Print more detailed info.  Use with -i and -l")
@click.option("-k", "kill", multiple=True, metavar="<range>",
              help="Terminate jobs by job ID and/or range.")
@click.option("-K", "kill_all", is_flag=True, help="Terminate all running jobs.")
@click.option("-i", "info", metavar="<range>", help="Lists detailed information about a running job.")
@click.pass_context
def jobs(ctx, list_jobs: bool, verbose: bool, kill: tuple, kill_all: bool, info: str | None):
    """
    Displays and manages jobs.

    With no options (or only -v) all running jobs are listed. Ranges are
    comma-separated IDs and inclusive spans, e.g. 1,3-5,7.

    Examples:

        jobconsole jobs -v

        jobconsole jobs -k 0-2 -k 5

        jobconsole jobs -i 3 -v
    """
    options = JobsOptions(
        list_jobs=list_jobs,
        verbose=verbose,
        kill=kill,
        kill_all=kill_all,
        info=info,
    )
    _emit(ctx, _get_router(ctx).jobs(options))


@main.command("kill")
@click.argument("ids", nargs=-1, metavar="<job1> [job2 ...]")
@click.pass_context
def kill(ctx, ids: tuple):
    """
    Kill a job.

    Equivalent to 'jobs -k job1 -k job2 ...'; each argument may be a range.
    """
    _emit(ctx, _get_router(ctx).kill(ids))


@main.command("rename_job")
@click.argument("args", nargs=-1, metavar="[ID] [Name]")
@click.pass_context
def rename_job(ctx, args: tuple):
    """
    Rename a job that's currently active.

    You may use the jobs command to see what jobs are available.

    Example:

        jobconsole rename_job 0 "https listener"
    """
    _emit(ctx, _get_router(ctx).rename_job(args))


@main.command("handler")
@click.option("-x", "exit_on_session", is_flag=True,
              help="Shut the Handler down after a session is established")
@click.option("-p", "payload", metavar="<payload>", help="The payload to configure the handler for")
@click.option("-P", "port", metavar="<port>", help="The RPORT/LPORT to configure the handler for")
@click.option("-H", "host", metavar="<host>", help="The RHOST/LHOST to configure the handler for")
@click.option("-e", "encoder", metavar="<encoder>", help="An Encoder to use for Payload Stage Encoding")
@click.option("-n", "job_name", metavar="<name>", help="The custom name to give the handler job")
@click.pass_context
def handler(ctx, exit_on_session: bool, payload, port, host, encoder, job_name):
    """
    Start a payload handler as a background job.

    -p, -P and -H are required; every missing one is reported.

    Example:

        jobconsole handler -p generic/shell_reverse_tcp -H 0.0.0.0 -P 4444 -n listener
    """
    options = HandlerOptions(
        payload=payload,
        port=port,
        host=host,
        encoder=encoder,
        job_name=job_name,
        exit_on_session=exit_on_session,
    )
    _emit(ctx, _get_router(ctx).handler(options))


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
@click.pass_context
def init(ctx, force: bool):
    """Initialize jobconsole configuration."""
    from jobconsole.config import get_jobconsole_home
    import yaml

    home = get_jobconsole_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        ctx.exit(1)

    default_cfg = ConsoleConfig(env_file=str(home / ".env")).to_dict()
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text("# Variables loaded into the jobconsole process on startup\n")

    click.echo(f"Initialized jobconsole config at {cfg_path}")


@main.command("shell")
@click.pass_context
def shell(ctx):
    """
    Start an interactive session.

    The session keeps one job registry alive, so handlers launched in it
    can be listed, renamed and killed by later commands. Type 'help' for
    the command list and 'exit' to leave.
    """
    _get_router(ctx)
    obj = ctx.obj

    print_line("jobconsole interactive session. Type 'help' for commands, 'exit' to leave.")
    while True:
        try:
            line = click.prompt("jobconsole", prompt_suffix=" > ", default="", show_default=False)
        except click.Abort:
            print_line()
            break

        line = line.strip()
        if not line:
            continue
        if line in ("exit", "quit"):
            break

        try:
            args = shlex.split(line)
        except ValueError as e:
            print_error(f"Could not parse command: {e}")
            continue

        if args[0] == "help":
            args = ["--help"]
        elif args[0] == "shell":
            print_error("Already in an interactive session")
            continue

        try:
            main.main(args=args, prog_name="jobconsole", obj=obj, standalone_mode=False)
        except click.ClickException as e:
            e.show()
        except click.Abort:
            print_line()


if __name__ == "__main__":
    main()
