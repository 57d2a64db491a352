import pytest

from hello_grpc import Server
from hello_grpc.greeter import app as greeter_app


@pytest.fixture
def greeter_server():
    server = Server(greeter_app.services)
    server.bind("127.0.0.1", 0)
    yield server
    server.shutdown()


@pytest.fixture
def target(greeter_server):
    return greeter_server.address


@pytest.fixture
def free_port():
    """A port that was just bound and released, so nothing listens on it."""
    server = Server(greeter_app.services)
    port = server.bind("127.0.0.1", 0)
    server.shutdown()
    return port
