# -*- coding: utf-8 -*-
"""Protobuf binary codec between pydantic schemas and wire bytes.

Encoding is plain proto3: each declared field is tagged with its number
(``HelloRequest.name`` and ``HelloReply.message`` are both field 1) and
strings are length-delimited UTF-8. gRPC adds its own length prefix around
every message on the HTTP/2 stream.
"""
from typing import Generic, Type, TypeVar

from google.protobuf.message import DecodeError
from google.protobuf.unknown_fields import UnknownFieldSet
from pydantic import BaseModel, ValidationError

from hello_grpc.exceptions import MalformedMessage
from hello_grpc.utils import message_to_pydantic, pydantic_to_message

M = TypeVar("M", bound=BaseModel)


class Codec(Generic[M]):
    def __init__(self, model: Type[M], message_class: type):
        self.model = model
        self.message_class = message_class

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.model.__name__})"

    def encode(self, record: M) -> bytes:
        if not isinstance(record, self.model):
            raise TypeError(
                f"expected {self.model.__name__}, got {type(record).__name__}"
            )
        message = pydantic_to_message(record, self.message_class)
        return message.SerializeToString(deterministic=True)

    def decode(self, data: bytes) -> M:
        message = self.message_class()
        try:
            message.ParseFromString(data)
        except (DecodeError, UnicodeDecodeError) as e:
            raise MalformedMessage(
                f"cannot decode {self.model.__name__}: {e}"
            ) from e
        # fields outside the schema, including field 1 sent with the wrong wire type
        unknown = UnknownFieldSet(message)
        if len(unknown):
            numbers = sorted({field.field_number for field in unknown})
            raise MalformedMessage(
                f"cannot decode {self.model.__name__}: unexpected fields {numbers}"
            )
        try:
            return message_to_pydantic(message, self.model)
        except ValidationError as e:
            raise MalformedMessage(
                f"cannot decode {self.model.__name__}: {e}"
            ) from e

