# -*- coding: utf-8 -*-
from typing import Optional

import grpc
from grpc._typing import MetadataType


class RPCException(grpc.RpcError):
    default_code: grpc.StatusCode = grpc.StatusCode.UNKNOWN

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        code: Optional[grpc.StatusCode] = None,
        trailing_metadata: Optional[MetadataType] = None,
    ) -> None:
        code = code or self.default_code
        if detail is None:
            detail = code.value[1]
        super().__init__(detail)
        self.code = code
        self.detail = detail
        self.trailing_metadata = trailing_metadata

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        return f"{class_name}(code={self.code.value[0]}, detail={self.detail!r})"


class BindError(RPCException):
    """The server could not claim its listening endpoint."""

    default_code = grpc.StatusCode.UNAVAILABLE


class ConnectError(RPCException):
    """The client could not reach the server."""

    default_code = grpc.StatusCode.UNAVAILABLE


class MalformedMessage(RPCException):
    """Bytes on the wire do not match the expected message schema."""

    default_code = grpc.StatusCode.INVALID_ARGUMENT


class DeadlineExceeded(RPCException):
    default_code = grpc.StatusCode.DEADLINE_EXCEEDED


class ConnectionClosed(RPCException):
    """The peer terminated the stream while a call was in flight."""

    default_code = grpc.StatusCode.UNAVAILABLE


class UnknownMethod(RPCException):
    default_code = grpc.StatusCode.UNIMPLEMENTED


_STATUS_TO_EXCEPTION = {
    grpc.StatusCode.DEADLINE_EXCEEDED: DeadlineExceeded,
    grpc.StatusCode.INVALID_ARGUMENT: MalformedMessage,
    grpc.StatusCode.UNAVAILABLE: ConnectionClosed,
    grpc.StatusCode.CANCELLED: ConnectionClosed,
    grpc.StatusCode.UNIMPLEMENTED: UnknownMethod,
}


def from_rpc_error(error: grpc.RpcError) -> RPCException:
    """Translate an error raised by a grpc call object into the local taxonomy."""
    if isinstance(error, RPCException):
        return error
    code = error.code() if isinstance(error, grpc.Call) else grpc.StatusCode.UNKNOWN
    detail = error.details() if isinstance(error, grpc.Call) else str(error)
    exc_class = _STATUS_TO_EXCEPTION.get(code, RPCException)
    return exc_class(
        detail or None,
        code=code,
        trailing_metadata=error.trailing_metadata()
        if isinstance(error, grpc.Call)
        else None,
    )
