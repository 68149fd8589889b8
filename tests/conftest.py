import logging

import pytest

from jobconsole.handler import HandlerOptions
from jobconsole.modules import CatalogModuleFactory
from jobconsole.registry import InMemoryJobRegistry
from jobconsole.router import CommandRouter


@pytest.fixture
def registry():
    return InMemoryJobRegistry()


@pytest.fixture
def factory(registry):
    return CatalogModuleFactory(registry)


@pytest.fixture
def router(registry, factory):
    return CommandRouter(registry, factory)


@pytest.fixture
def cli_obj(router):
    """Context object that makes the CLI reuse the test router."""
    return {"router": router}


@pytest.fixture
def launch(router):
    """Launch a handler job through the router and return its id."""
    def _launch(payload="generic/shell_reverse_tcp", host="127.0.0.1", port="4444", **kwargs):
        result = router.handler(HandlerOptions(payload=payload, host=host, port=port, **kwargs))
        assert result.ok, result.messages()
        return result.job_id
    return _launch


@pytest.fixture(autouse=True)
def isolated_home(request, tmp_path, monkeypatch):
    # Keep tests away from a real ~/.config/jobconsole
    if "test_config" in request.module.__name__ or "test_cli_config" in request.module.__name__:
        yield
        return
    monkeypatch.setenv("JOBCONSOLE_HOME", str(tmp_path / "jobconsole_home"))
    yield


@pytest.fixture(autouse=True)
def reset_logging():
    # CLI invocations install handlers on the package logger
    yield
    logger = logging.getLogger("jobconsole")
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []
    logger.setLevel(logging.NOTSET)
