from hello_grpc.app import HelloGRPC
from hello_grpc.client import Client, call
from hello_grpc.codec import Codec
from hello_grpc.context import ServiceContext
from hello_grpc.exceptions import (
    BindError,
    ConnectError,
    ConnectionClosed,
    DeadlineExceeded,
    MalformedMessage,
    RPCException,
    UnknownMethod,
)
from hello_grpc.greeter import decode, encode
from hello_grpc.schema import BaseSchema, HelloReply, HelloRequest
from hello_grpc.server import Server, ServerState
from hello_grpc.service import Service, UnaryUnaryMethod

__all__ = [
    "BaseSchema",
    "BindError",
    "Client",
    "Codec",
    "ConnectError",
    "ConnectionClosed",
    "DeadlineExceeded",
    "HelloGRPC",
    "HelloReply",
    "HelloRequest",
    "MalformedMessage",
    "RPCException",
    "Server",
    "ServerState",
    "Service",
    "ServiceContext",
    "UnaryUnaryMethod",
    "UnknownMethod",
    "call",
    "decode",
    "encode",
]
