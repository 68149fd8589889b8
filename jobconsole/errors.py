"""
Error classes for jobconsole commands.

Every failure a console command can hit is one of these types:
- InvalidArguments: Malformed flags or positional arguments (command aborts)
- MalformedRangeError: Bad job identifier range syntax (command aborts)
- JobNotFound: Identifier not in the registry (batch continues for siblings)
- UnknownPayload / UnresolvableTarget: Handler launch aborts before any
  registry mutation

Error handling contract:
- Builders and registries raise these errors
- The CommandRouter catches them at the command boundary and turns them
  into diagnostics, so no documented failure escapes to the host process
- EncoderResolutionWarning is recorded, never raised
"""


class JobConsoleError(Exception):
    """Base exception for jobconsole."""
    pass


class ConfigError(JobConsoleError):
    """Configuration file is unreadable or invalid."""
    pass


class CatalogError(JobConsoleError):
    """Module catalog file is unreadable or invalid."""
    pass


class InvalidArguments(JobConsoleError):
    """
    Malformed flags or wrong positional argument count.

    Examples:
    - rename_job with one argument
    - rename_job with a non-integer identifier
    """
    pass


class MissingArgument(InvalidArguments):
    """A required option was not supplied."""

    def __init__(self, field: str, flag: str, message: str):
        super().__init__(message)
        self.field = field
        self.flag = flag


class MalformedRangeError(JobConsoleError):
    """A job identifier range expression could not be parsed."""

    def __init__(self, expression: str, token: str):
        super().__init__(f"Malformed job identifier range {expression!r}: bad token {token!r}")
        self.expression = expression
        self.token = token


class JobNotFound(JobConsoleError):
    """No job with the given identifier exists in the registry."""

    def __init__(self, job_id: int):
        super().__init__(f"Job {job_id} does not exist.")
        self.job_id = job_id


class UnknownPayload(JobConsoleError):
    """The module factory could not resolve a payload by name."""

    def __init__(self, name: str):
        super().__init__(f"Invalid payload name supplied: {name}")
        self.name = name


class UnresolvableTarget(JobConsoleError):
    """
    The payload exposes none of the known target fields for a kind.

    kind is "host" or "port".
    """

    def __init__(self, kind: str, payload: str = ""):
        suffix = f" on payload {payload}" if payload else " on this payload"
        super().__init__(f"Could not determine how to set {kind.capitalize()}{suffix}")
        self.kind = kind
        self.payload = payload


class InvalidHandlerRequest(JobConsoleError):
    """
    Aggregate of every problem found while building a handler request.

    Carries all collected errors so they can be reported together
    instead of stopping at the first one.
    """

    def __init__(self, errors: list[JobConsoleError]):
        super().__init__("; ".join(str(e) for e in errors))
        self.errors = list(errors)

    @property
    def missing_fields(self) -> list[str]:
        """Names of required fields that were not supplied."""
        return [e.field for e in self.errors if isinstance(e, MissingArgument)]


class EncoderResolutionWarning(UserWarning):
    """Stage encoder could not be resolved; launch continues without encoding."""

    def __init__(self, name: str):
        super().__init__(f"Invalid encoder name supplied: {name}; stage encoding disabled")
        self.name = name
