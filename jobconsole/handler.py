"""
HandlerRequestBuilder - Turn sparse handler options into a launched job.

Flow:
1. HandlerOptions: raw values from the command line (-p, -P, -H, -e, -n, -x)
2. HandlerRequest: payload resolved, host/port keys resolved, encoder checked
3. ConfigurationOverlay: payload defaults < target/encoder overrides < handler fields
4. submit(): a handler module launches the merged datastore as a job,
   then the job is renamed if a custom name was given

Nothing touches the registry until every required field is present and
resolved.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from jobconsole.errors import (
    EncoderResolutionWarning,
    InvalidArguments,
    InvalidHandlerRequest,
    JobConsoleError,
    MissingArgument,
    UnknownPayload,
    UnresolvableTarget,
)
from jobconsole.modules import Module, ModuleFactory
from jobconsole.registry import Job, JobRegistry
from jobconsole.targets import TargetKind, TargetResolver

logger = logging.getLogger(__name__)


@dataclass
class HandlerOptions:
    """Parsed handler command options."""
    payload: Optional[str] = None
    port: Optional[str] = None
    host: Optional[str] = None
    encoder: Optional[str] = None
    job_name: Optional[str] = None
    exit_on_session: bool = False
    help: bool = False

    def is_empty(self) -> bool:
        """True when no option at all was given."""
        return not (
            self.payload or self.port or self.host or self.encoder
            or self.job_name or self.exit_on_session or self.help
        )


# (field, flag, message), in reporting order
REQUIRED_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("payload", "-p", "You must select a payload with -p <payload>"),
    ("port", "-P", "You must select a port(RPORT/LPORT) with -P <port number>"),
    ("host", "-H", "You must select a host(RHOST/LHOST) with -H <hostname or address>"),
)


class ConfigurationOverlay:
    """
    Ordered merge of configuration layers.

    Later layers win on key conflicts. Layers are copied when added, so
    merging never mutates a source mapping.
    """

    def __init__(self, layers: Iterable[Mapping[str, Any]] = ()):
        self._layers: list[dict[str, Any]] = [dict(layer) for layer in layers]

    def add(self, layer: Mapping[str, Any]) -> "ConfigurationOverlay":
        self._layers.append(dict(layer))
        return self

    @property
    def layers(self) -> list[dict[str, Any]]:
        return [dict(layer) for layer in self._layers]

    def merged(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for layer in self._layers:
            result.update(layer)
        return result


@dataclass
class HandlerRequest:
    """
    A fully resolved handler launch.

    Attributes:
        payload: Resolved payload module
        host: Host value from -H
        port: Port value from -P
        host_key: Datastore key the host is written to (LHOST or RHOST)
        port_key: Datastore key the port is written to (LPORT or RPORT)
        encoder: Resolved stage encoder, or None
        job_name: Custom job name, or None to keep the registry default
        exit_on_session: Shut the handler down after the first session
        warnings: Non-fatal problems found while building
    """
    payload: Module
    host: str
    port: str
    host_key: str
    port_key: str
    encoder: Optional[Module] = None
    job_name: Optional[str] = None
    exit_on_session: bool = False
    warnings: list[EncoderResolutionWarning] = field(default_factory=list)

    def overrides(self) -> dict[str, Any]:
        """Target and stage encoding values layered over payload defaults."""
        values: dict[str, Any] = {self.host_key: self.host, self.port_key: self.port}
        if self.encoder is not None:
            values["EnableStageEncoding"] = True
            values["StageEncoder"] = self.encoder.refname
        return values

    def handler_fields(self, local_input: Any = None, local_output: Any = None) -> dict[str, Any]:
        """Fixed fields every handler job gets."""
        return {
            "Payload": self.payload.refname,
            "LocalInput": local_input,
            "LocalOutput": local_output,
            "ExitOnSession": self.exit_on_session,
            "RunAsJob": True,
        }

    def overlay(self, local_input: Any = None, local_output: Any = None) -> ConfigurationOverlay:
        return ConfigurationOverlay([
            self.payload.datastore,
            self.overrides(),
            self.handler_fields(local_input, local_output),
        ])


class HandlerRequestBuilder:
    """
    Builds and submits handler requests.

    Usage:
        builder = HandlerRequestBuilder(factory, registry)
        request = builder.build(HandlerOptions(payload="generic/shell_reverse_tcp",
                                               host="10.0.0.1", port="4444"))
        job = builder.submit(request)
    """

    def __init__(
        self,
        factory: ModuleFactory,
        registry: JobRegistry,
        resolver: Optional[TargetResolver] = None,
        local_input: Any = None,
        local_output: Any = None,
    ):
        self.factory = factory
        self.registry = registry
        self.resolver = resolver or TargetResolver()
        self.local_input = local_input
        self.local_output = local_output

    def build(self, options: HandlerOptions) -> HandlerRequest:
        """
        Resolve options into a HandlerRequest.

        Raises:
            InvalidHandlerRequest: With every missing required field and a
                blank job name, or with every unresolvable target field
            UnknownPayload: If the payload name does not resolve
        """
        problems: list[JobConsoleError] = [
            MissingArgument(name, flag, message)
            for name, flag, message in REQUIRED_FIELDS
            if not getattr(options, name)
        ]
        # Same rule as rename_job
        if options.job_name is not None and not options.job_name.strip():
            problems.append(InvalidArguments("Job name must not be empty"))
        if problems:
            raise InvalidHandlerRequest(problems)

        payload = self.factory.create_payload(options.payload)
        if payload is None:
            raise UnknownPayload(options.payload)

        warnings: list[EncoderResolutionWarning] = []
        encoder = None
        if options.encoder:
            encoder = self.factory.create_encoder(options.encoder)
            if encoder is None:
                # Launch proceeds without stage encoding
                warning = EncoderResolutionWarning(options.encoder)
                logger.warning(str(warning))
                warnings.append(warning)

        keys: dict[TargetKind, str] = {}
        unresolved: list[JobConsoleError] = []
        for kind in (TargetKind.HOST, TargetKind.PORT):
            try:
                keys[kind] = self.resolver.resolve(payload.datastore, kind, payload.refname)
            except UnresolvableTarget as e:
                unresolved.append(e)
        if unresolved:
            raise InvalidHandlerRequest(unresolved)

        return HandlerRequest(
            payload=payload,
            host=options.host,
            port=options.port,
            host_key=keys[TargetKind.HOST],
            port_key=keys[TargetKind.PORT],
            encoder=encoder,
            job_name=options.job_name or None,
            exit_on_session=options.exit_on_session,
            warnings=warnings,
        )

    def submit(self, request: HandlerRequest) -> Job:
        """
        Launch the request as a handler job.

        Returns:
            The new Job as currently held by the registry
        """
        datastore = request.overlay(self.local_input, self.local_output).merged()
        handler = self.factory.create_handler()
        job = handler.launch(datastore, advanced=request.payload.advanced)
        logger.info(
            f"Launched handler job {job.job_id} for {request.payload.refname} "
            f"({request.host_key}={request.host}, {request.port_key}={request.port})"
        )

        if request.job_name:
            self.registry.rename(job.job_id, request.job_name)

        return self.registry.get(job.job_id)
