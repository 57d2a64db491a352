"""The reference Greeter service: ``helloworld.Greeter/SayHello``."""
from typing import Type, TypeVar

from logzero import logger
from pydantic import BaseModel

from hello_grpc.app import HelloGRPC
from hello_grpc.codec import Codec
from hello_grpc.schema import HelloReply, HelloRequest

M = TypeVar("M", bound=BaseModel)

app = HelloGRPC(service_name="Greeter", package="helloworld")


@app.unary_unary("SayHello", description="Sends a greeting")
def say_hello(request: HelloRequest) -> HelloReply:
    logger.info(f"Received: {request.name}")
    return HelloReply(message="Hello " + request.name)


def codec_for(model: Type[M]) -> Codec[M]:
    method = app.service.get_method("SayHello")
    for codec in (method.request_codec, method.response_codec):
        if codec.model is model:
            return codec
    raise TypeError(f"{model.__name__} is not a Greeter message")


def encode(record: BaseModel) -> bytes:
    return codec_for(type(record)).encode(record)


def decode(data: bytes, expected_type: Type[M]) -> M:
    return codec_for(expected_type).decode(data)
