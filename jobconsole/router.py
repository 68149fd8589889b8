"""
CommandRouter - Semantics of the jobs, kill, rename_job and handler commands.

The router is stateless between invocations. It holds injected
collaborators (registry, module factory, renderer, handler builder), re-reads
the registry for every command, and returns a CommandResult instead of
printing, so the same router serves the CLI, the interactive shell and
embedding hosts.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from rich.console import RenderableType

from jobconsole.config import ConsoleConfig
from jobconsole.errors import (
    InvalidArguments,
    InvalidHandlerRequest,
    JobNotFound,
    MalformedRangeError,
    UnknownPayload,
)
from jobconsole.handler import HandlerOptions, HandlerRequestBuilder
from jobconsole.modules import CatalogModuleFactory, ModuleFactory
from jobconsole.ranges import expand_range, is_single_identifier
from jobconsole.registry import InMemoryJobRegistry, JobRegistry
from jobconsole.render import JobRenderer

logger = logging.getLogger(__name__)


STATUS = "status"
ERROR = "error"
WARNING = "warning"
LINE = "line"


@dataclass
class Diagnostic:
    """One reported outcome line."""
    level: str
    message: str
    job_id: Optional[int] = None
    error: Optional[BaseException] = None


@dataclass
class CommandResult:
    """
    Outcome of one command invocation.

    Attributes:
        ok: False if the command aborted or any identifier failed
        show_help: The caller should display the command's help
        diagnostics: Status, error, warning and plain lines in report order
        renderables: Rich renderables produced by the renderer
        job_id: Identifier of a job created by the command
    """
    ok: bool = True
    show_help: bool = False
    diagnostics: list[Diagnostic] = field(default_factory=list)
    renderables: list[RenderableType] = field(default_factory=list)
    job_id: Optional[int] = None

    def status(self, message: str, job_id: Optional[int] = None) -> None:
        self.diagnostics.append(Diagnostic(STATUS, message, job_id))

    def error(
        self,
        message: str,
        job_id: Optional[int] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        self.ok = False
        self.diagnostics.append(Diagnostic(ERROR, message, job_id, error))

    def warning(self, message: str, error: Optional[BaseException] = None) -> None:
        self.diagnostics.append(Diagnostic(WARNING, message, error=error))

    def line(self, message: str) -> None:
        self.diagnostics.append(Diagnostic(LINE, message))

    def messages(self, level: Optional[str] = None) -> list[str]:
        return [d.message for d in self.diagnostics if level is None or d.level == level]

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.level == ERROR]


@dataclass
class JobsOptions:
    """Parsed jobs command options."""
    list_jobs: bool = False
    verbose: bool = False
    kill: tuple[str, ...] = ()
    kill_all: bool = False
    info: Optional[str] = None
    help: bool = False

    def has_action(self) -> bool:
        return bool(self.list_jobs or self.kill or self.kill_all or self.info is not None)


class CommandRouter:
    """
    Dispatches console commands against a job registry.

    Usage:
        router = CommandRouter.create_default()
        result = router.handler(HandlerOptions(payload="generic/shell_reverse_tcp",
                                               host="0.0.0.0", port="4444"))
        result = router.kill(["0-2", "5"])
    """

    def __init__(
        self,
        registry: JobRegistry,
        factory: ModuleFactory,
        renderer: Optional[JobRenderer] = None,
        builder: Optional[HandlerRequestBuilder] = None,
        local_input: Any = None,
        local_output: Any = None,
    ):
        self.registry = registry
        self.factory = factory
        self.renderer = renderer or JobRenderer()
        self.builder = builder or HandlerRequestBuilder(
            factory, registry, local_input=local_input, local_output=local_output
        )

    @classmethod
    def create_default(
        cls,
        config: Optional[ConsoleConfig] = None,
        local_input: Any = None,
        local_output: Any = None,
    ) -> "CommandRouter":
        """
        Create a router over a fresh in-memory registry.

        Uses the configured module catalog if one is set, otherwise the
        built-in catalog.

        Raises:
            CatalogError: If the configured catalog cannot be loaded
        """
        config = config or ConsoleConfig()
        registry = InMemoryJobRegistry()
        catalog_path = config.get_catalog_path()
        if catalog_path is not None:
            factory = CatalogModuleFactory.from_file(catalog_path, registry, handler=config.handler_module)
        else:
            factory = CatalogModuleFactory(registry, handler=config.handler_module)
        return cls(registry, factory, local_input=local_input, local_output=local_output)

    # ------------------------------------------------------------------
    # jobs / kill
    # ------------------------------------------------------------------

    def jobs(self, options: JobsOptions) -> CommandResult:
        """
        List, inspect and terminate jobs.

        Every range is expanded before anything is stopped, so a malformed
        range aborts the command with the registry untouched.
        """
        result = CommandResult()
        if options.help:
            result.show_help = True
            return result

        # No action flags (or only -v) means list
        list_jobs = options.list_jobs or not options.has_action()

        kill_batches: list[list[int]] = []
        for expression in options.kill:
            ids = self._expand(expression, result)
            if ids is None:
                return result
            kill_batches.append(ids)

        info_ids: list[int] = []
        if options.info is not None:
            ids = self._expand(options.info, result)
            if ids is None:
                return result
            info_ids = ids

        for ids in kill_batches:
            self._stop_jobs(ids, result)

        if options.kill_all:
            self._stop_all(result)

        if list_jobs:
            result.renderables.append(
                self.renderer.render_jobs(self.registry.jobs(), verbose=options.verbose)
            )

        for job_id in info_ids:
            try:
                job = self.registry.get(job_id)
            except JobNotFound as e:
                result.error(f"Invalid Job ID: {job_id}", job_id=job_id, error=e)
                continue
            result.renderables.extend(self.renderer.render_job_detail(job, verbose=options.verbose))

        return result

    def kill(self, args: list[str] | tuple[str, ...]) -> CommandResult:
        """Stop jobs; each argument is a range, as if passed with -k."""
        if not args or "-h" in args:
            result = CommandResult(show_help=True)
            result.ok = "-h" in args
            return result
        return self.jobs(JobsOptions(kill=tuple(args)))

    def _expand(self, expression: str, result: CommandResult) -> Optional[list[int]]:
        """Expand a range, recording an error and returning None if it is unusable."""
        try:
            ids = expand_range(expression)
        except MalformedRangeError as e:
            logger.debug(str(e))
            result.error("Please specify valid job identifier(s)", error=e)
            return None
        if not ids:
            result.error("Please specify valid job identifier(s)")
            return None
        return ids

    def _stop_jobs(self, ids: list[int], result: CommandResult) -> None:
        result.status(f"Stopping the following job(s): {', '.join(str(i) for i in ids)}")
        for job_id in ids:
            try:
                self.registry.stop(job_id)
            except JobNotFound as e:
                result.error(f"Invalid job identifier: {job_id}", job_id=job_id, error=e)
            else:
                result.status(f"Stopping job {job_id}", job_id=job_id)

    def _stop_all(self, result: CommandResult) -> None:
        result.line("Stopping all jobs...")
        for job_id in self.registry.all_identifiers():
            try:
                self.registry.stop(job_id)
            except JobNotFound:
                # Already gone; nothing left to stop
                continue
            result.status(f"Stopping job {job_id}", job_id=job_id)

    # ------------------------------------------------------------------
    # rename_job
    # ------------------------------------------------------------------

    def rename_job(self, args: list[str] | tuple[str, ...]) -> CommandResult:
        """Rename a job: exactly two arguments, an integer id and a name."""
        result = CommandResult()
        if "-h" in args:
            result.show_help = True
            result.ok = False
            return result

        if len(args) != 2 or not is_single_identifier(args[0]):
            e = InvalidArguments("rename_job takes exactly two arguments: <id> <name>")
            result.error(str(e), error=e)
            result.show_help = True
            return result

        job_id, name = int(args[0]), args[1]
        if not name.strip():
            e = InvalidArguments("Job name must not be empty")
            result.error(str(e), error=e)
            return result

        try:
            job = self.registry.rename(job_id, name)
        except JobNotFound as e:
            result.error(str(e), job_id=job_id, error=e)
            return result

        result.status(f"Job {job_id} updated", job_id=job_id)
        result.renderables.append(self.renderer.render_jobs([job]))
        return result

    # ------------------------------------------------------------------
    # handler
    # ------------------------------------------------------------------

    def handler(self, options: HandlerOptions) -> CommandResult:
        """
        Launch a payload handler as a background job.

        Every missing required option is reported, not only the first.
        """
        result = CommandResult()
        if options.is_empty() or options.help:
            result.show_help = True
            result.ok = options.help
            return result

        try:
            request = self.builder.build(options)
        except InvalidHandlerRequest as e:
            for error in e.errors:
                result.error(str(error), error=error)
            if e.missing_fields:
                result.line("Please supply missing arguments and try again.")
            return result
        except UnknownPayload as e:
            result.error(str(e), error=e)
            available = self.factory.list_payloads()
            if available:
                result.line(f"Available payloads: {', '.join(available)}")
            return result

        for warning in request.warnings:
            result.warning(str(warning), error=warning)
        if request.warnings:
            available = self.factory.list_encoders()
            if available:
                result.line(f"Available encoders: {', '.join(available)}")

        job = self.builder.submit(request)
        result.job_id = job.job_id
        result.status(f"Payload Handler Started as Job {job.job_id}", job_id=job.job_id)
        return result
