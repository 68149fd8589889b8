"""
Rich renderables for job listings and job detail.

The router hands jobs and a verbosity flag to a JobRenderer and passes the
returned renderables back to the CLI, which prints them.
"""

from typing import Any

from rich.console import RenderableType
from rich.table import Table
from rich.text import Text

from jobconsole.registry import Job


# Handler fields that are process bindings, not options
HIDDEN_OPTIONS = frozenset({"LocalInput", "LocalOutput"})


def _datastore(job: Job) -> dict[str, Any]:
    return dict(getattr(job.ctx, "datastore", None) or {})


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _payload_summary(datastore: dict[str, Any]) -> str:
    parts = []
    for key in ("LHOST", "RHOST"):
        if datastore.get(key):
            parts.append(f"tcp://{datastore[key]}")
            break
    for key in ("LPORT", "RPORT"):
        if datastore.get(key):
            if parts:
                parts[0] = f"{parts[0]}:{datastore[key]}"
            else:
                parts.append(f":{datastore[key]}")
            break
    return parts[0] if parts else ""


class JobRenderer:
    """Builds rich tables for jobs."""

    def render_jobs(self, jobs: list[Job], verbose: bool = False) -> RenderableType:
        """
        Render a job listing.

        Args:
            jobs: Jobs to list, in display order
            verbose: Add start time and exit-on-session columns

        Returns:
            A Table, or a Text notice when there are no jobs
        """
        if not jobs:
            return Text("No active jobs.")

        table = Table(title="Jobs", title_justify="left")
        table.add_column("Id", justify="right")
        table.add_column("Name")
        table.add_column("Payload")
        table.add_column("Payload opts")
        if verbose:
            table.add_column("Started")
            table.add_column("Exit on session")

        for job in jobs:
            datastore = _datastore(job)
            row = [
                str(job.job_id),
                job.name,
                _format_value(datastore.get("Payload")),
                _payload_summary(datastore),
            ]
            if verbose:
                row.append(job.start_time.strftime("%Y-%m-%d %H:%M:%S %Z"))
                row.append(_format_value(datastore.get("ExitOnSession", "")))
            table.add_row(*row)

        return table

    def render_job_detail(self, job: Job, verbose: bool = False) -> list[RenderableType]:
        """
        Render one job's name, start time and options.

        Advanced options are included only when verbose is set.
        """
        header = f"Name: {job.name}"
        if job.start_time:
            header += f", started at {job.start_time.strftime('%Y-%m-%d %H:%M:%S %Z')}"
        renderables: list[RenderableType] = [Text(header)]

        ctx = job.ctx
        datastore = _datastore(job)
        advanced_keys = set(getattr(ctx, "advanced", ()) or ())
        basic = {
            k: v for k, v in datastore.items()
            if k not in advanced_keys and k not in HIDDEN_OPTIONS
        }
        if basic:
            renderables.append(self._options_table("Module options", basic))

        if verbose:
            advanced = {k: v for k, v in datastore.items() if k in advanced_keys}
            if advanced:
                renderables.append(self._options_table("Module advanced options", advanced))

        return renderables

    @staticmethod
    def _options_table(title: str, options: dict[str, Any]) -> Table:
        table = Table(title=title, title_justify="left")
        table.add_column("Name")
        table.add_column("Current Setting")
        for key in sorted(options):
            table.add_row(key, _format_value(options[key]))
        return table
