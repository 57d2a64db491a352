import socket
import threading
import time
from concurrent import futures
from unittest.mock import Mock

import grpc
import pytest
from pydantic import BaseModel

from hello_grpc import (
    Client,
    ConnectError,
    ConnectionClosed,
    DeadlineExceeded,
    HelloGRPC,
    HelloReply,
    HelloRequest,
    MalformedMessage,
    RPCException,
    Server,
    Service,
    UnknownMethod,
    call,
)
from hello_grpc.greeter import app as greeter_app


@pytest.fixture
def release():
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def silent_listener():
    """A TCP socket that accepts connections but never speaks HTTP/2."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(8)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def slow_server(release):
    """A Greeter whose SayHello blocks until `release` is set, except for
    requests named "fast"."""
    entered = threading.Event()
    app = HelloGRPC(service_name="Greeter", package="helloworld")

    @app.unary_unary("SayHello")
    def say_hello(request: HelloRequest) -> HelloReply:
        if request.name != "fast":
            entered.set()
            release.wait(5)
        return HelloReply(message="Hello " + request.name)

    server = app.create_server()
    server.bind("127.0.0.1", 0)
    server.entered = entered
    yield server
    release.set()
    server.shutdown()


def test_say_hello_end_to_end(target):
    reply = call(target, "SayHello", HelloRequest(name="World"), timeout=1)
    assert reply == HelloReply(message="Hello World")


def test_empty_name_end_to_end(target):
    client = Client(target, greeter_app.service)
    assert client.call("SayHello", HelloRequest(), timeout=1).message == "Hello "


def test_connection_refused(free_port):
    started = time.monotonic()
    with pytest.raises(ConnectError):
        call(f"127.0.0.1:{free_port}", "SayHello", HelloRequest(name="World"), timeout=1)
    assert time.monotonic() - started < 3


def test_missing_unix_socket(tmp_path):
    with pytest.raises(ConnectError):
        call(
            f"unix:{tmp_path / 'missing.sock'}",
            "SayHello",
            HelloRequest(name="World"),
            timeout=1,
        )


def test_deadline_exceeded(slow_server):
    started = time.monotonic()
    with pytest.raises(DeadlineExceeded):
        call(slow_server.address, "SayHello", HelloRequest(name="late"), timeout=1)
    elapsed = time.monotonic() - started
    assert 0.9 <= elapsed < 3


def test_silent_server_exceeds_deadline(silent_listener):
    started = time.monotonic()
    with pytest.raises(DeadlineExceeded):
        call(
            f"127.0.0.1:{silent_listener}",
            "SayHello",
            HelloRequest(name="World"),
            timeout=1,
        )
    assert time.monotonic() - started < 3


def test_shutdown_closes_in_flight_call(slow_server, release):
    with futures.ThreadPoolExecutor(max_workers=1) as executor:
        pending = executor.submit(
            call, slow_server.address, "SayHello", HelloRequest(name="x"), 5
        )
        assert slow_server.entered.wait(5)
        # let the handler return once the server has cancelled the call
        threading.Timer(0.5, release.set).start()
        slow_server.shutdown(grace=0)
        with pytest.raises(ConnectionClosed):
            pending.result(timeout=5)


def test_concurrent_calls(target):
    names = [f"client-{i}" for i in range(16)]
    with futures.ThreadPoolExecutor(max_workers=len(names)) as executor:
        replies = list(
            executor.map(
                lambda name: call(target, "SayHello", HelloRequest(name=name), 5),
                names,
            )
        )
    assert [reply.message for reply in replies] == [f"Hello {name}" for name in names]


def test_slow_call_does_not_block_others(slow_server, release):
    with futures.ThreadPoolExecutor(max_workers=4) as executor:
        blocked = executor.submit(
            call, slow_server.address, "SayHello", HelloRequest(name="slow"), 5
        )
        assert slow_server.entered.wait(5)
        others = [
            executor.submit(
                call, slow_server.address, "SayHello", HelloRequest(name="fast"), 1
            )
            for _ in range(2)
        ]
        # answered while the slow handler is still waiting
        assert [f.result(timeout=5).message for f in others] == ["Hello fast"] * 2
        assert not blocked.done()
        release.set()
        assert blocked.result(timeout=5).message == "Hello slow"


def test_unknown_method_locally(target):
    with pytest.raises(UnknownMethod):
        call(target, "SayGoodbye", HelloRequest(name="World"), timeout=1)


def test_unknown_method_remotely(target):
    farewell = Service("Greeter", "helloworld")

    @farewell.unary_unary("SayGoodbye")
    def say_goodbye(request: HelloRequest) -> HelloReply:
        return HelloReply(message="Bye " + request.name)

    with pytest.raises(UnknownMethod):
        Client(target, farewell).call("SayGoodbye", HelloRequest(name="World"), 1)


def test_malformed_request_skips_handler():
    handler = Mock(return_value=HelloReply(message="unused"))
    app = HelloGRPC(service_name="Greeter", package="helloworld")

    @app.unary_unary("SayHello")
    def say_hello(request: HelloRequest) -> HelloReply:
        return handler(request)

    with app.create_server() as server:
        server.bind("127.0.0.1", 0)
        with grpc.insecure_channel(server.address) as channel:
            rpc = channel.unary_unary("/helloworld.Greeter/SayHello")
            with pytest.raises(grpc.RpcError):
                rpc(b"\x12\x01x", timeout=5)
    handler.assert_not_called()


def test_malformed_request_reported_to_client():
    # the client speaks a schema with an extra field the server does not know
    class WideRequest(BaseModel):
        name: str = ""
        nickname: str = ""

    wider = Service("Greeter", "helloworld")

    @wider.unary_unary("SayHello")
    def say_hello(request: WideRequest) -> HelloReply:
        return HelloReply(message=request.name)

    with greeter_app.create_server() as server:
        server.bind("127.0.0.1", 0)
        with pytest.raises(MalformedMessage):
            Client(server.address, wider).call(
                "SayHello", WideRequest(name="a", nickname="b"), 1
            )


def test_malformed_reply():
    def broken(request, context):
        return b"\x10\x01"

    server = grpc.server(futures.ThreadPoolExecutor(max_workers=2))
    server.add_generic_rpc_handlers(
        (
            grpc.method_handlers_generic_handler(
                "helloworld.Greeter",
                {"SayHello": grpc.unary_unary_rpc_method_handler(broken)},
            ),
        )
    )
    port = server.add_insecure_port("127.0.0.1:0")
    server.start()
    try:
        with pytest.raises(MalformedMessage):
            call(f"127.0.0.1:{port}", "SayHello", HelloRequest(name="World"), 1)
    finally:
        server.stop(None)


def test_handler_error_is_internal():
    app = HelloGRPC(service_name="Greeter", package="helloworld")

    @app.unary_unary("SayHello")
    def say_hello(request: HelloRequest) -> HelloReply:
        raise ValueError("boom")

    with app.create_server() as server:
        server.bind("127.0.0.1", 0)
        with pytest.raises(RPCException) as exc_info:
            call(server.address, "SayHello", HelloRequest(name="World"), 1)
    assert exc_info.value.code == grpc.StatusCode.INTERNAL
    assert exc_info.value.detail == "boom"


def test_timeout_must_be_positive(target):
    with pytest.raises(ValueError):
        call(target, "SayHello", HelloRequest(name="World"), timeout=0)
