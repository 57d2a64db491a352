import time
from unittest.mock import Mock

import grpc
import pytest

from hello_grpc import HelloReply, HelloRequest, ServiceContext, encode
from hello_grpc.service import Service


class Aborted(Exception):
    pass


@pytest.fixture
def mock_grpc_context():
    context = Mock(spec=grpc.ServicerContext)
    context.invocation_metadata.return_value = [("x-trace", "abc")]
    context.is_active.return_value = True
    context.time_remaining.return_value = 0.75
    context.peer.return_value = "ipv4:127.0.0.1:54321"
    context.abort.side_effect = Aborted
    return context


@pytest.fixture
def seen():
    return {}


@pytest.fixture
def service(seen):
    service = Service("Greeter", "helloworld")

    @service.unary_unary("SayHello")
    def say_hello(request: HelloRequest, context: ServiceContext) -> HelloReply:
        seen["context"] = context
        seen["peer"] = context.peer()
        seen["remaining"] = context.time_remaining()
        seen["active"] = context.is_active()
        seen["trace"] = context.metadata.get("x-trace")
        if request.name == "slow":
            time.sleep(0.1)
            seen["elapsed"] = context.elapsed_time
        if request.name == "reject":
            context.abort(grpc.StatusCode.PERMISSION_DENIED, "not you")
        return HelloReply(message=f"Hello {request.name} from {context.peer()}")

    service.setup()
    return service


def invoke(service, request, grpc_context):
    return service.methods["SayHello"](encode(request), grpc_context)


def test_handler_sees_call_context(service, seen, mock_grpc_context):
    payload = invoke(service, HelloRequest(name="World"), mock_grpc_context)

    reply = service.methods["SayHello"].response_codec.decode(payload)
    assert reply.message == "Hello World from ipv4:127.0.0.1:54321"
    assert isinstance(seen["context"], ServiceContext)
    assert seen["context"].grpc_context is mock_grpc_context
    assert seen["context"].service_method is service.methods["SayHello"]
    assert seen["remaining"] == 0.75
    assert seen["active"] is True
    assert seen["trace"] == "abc"


def test_elapsed_time_is_in_milliseconds(service, seen, mock_grpc_context):
    invoke(service, HelloRequest(name="slow"), mock_grpc_context)
    assert 100 <= seen["elapsed"] < 1000


def test_metadata_is_read_once(service, mock_grpc_context):
    context = ServiceContext(mock_grpc_context, service.methods["SayHello"])
    assert context.metadata == {"x-trace": "abc"}
    assert context.metadata == {"x-trace": "abc"}
    mock_grpc_context.invocation_metadata.assert_called_once()


def test_handler_abort_reaches_grpc(service, mock_grpc_context):
    with pytest.raises(Aborted):
        invoke(service, HelloRequest(name="reject"), mock_grpc_context)
    mock_grpc_context.abort.assert_called_once_with(
        grpc.StatusCode.PERMISSION_DENIED, "not you"
    )


def test_malformed_request_aborts_before_handler(service, seen, mock_grpc_context):
    with pytest.raises(Aborted):
        service.methods["SayHello"](b"\x12\x01x", mock_grpc_context)
    code, detail = mock_grpc_context.abort.call_args.args
    assert code == grpc.StatusCode.INVALID_ARGUMENT
    assert "HelloRequest" in detail
    assert "context" not in seen
