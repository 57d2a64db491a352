# -*- coding: utf-8 -*-
from typing import Annotated

from google.protobuf.descriptor_pb2 import FieldDescriptorProto
from pydantic import Field


class ProtoTag:
    __slots__ = ("name", "field_type")

    def __init__(self, name: str, field_type: int):
        self.name = name
        self.field_type = field_type


# Python -> Protobuf
PYTHON_TO_PROTOBUF_TYPES = {
    bytes: ProtoTag("bytes", FieldDescriptorProto.TYPE_BYTES),
    int: ProtoTag("int32", FieldDescriptorProto.TYPE_INT32),
    float: ProtoTag("float", FieldDescriptorProto.TYPE_FLOAT),
    bool: ProtoTag("bool", FieldDescriptorProto.TYPE_BOOL),
    str: ProtoTag("string", FieldDescriptorProto.TYPE_STRING),
}


Uint32 = Annotated[
    int, Field(ge=0, lt=2**32), ProtoTag("uint32", FieldDescriptorProto.TYPE_UINT32)
]
Uint64 = Annotated[
    int, Field(ge=0, lt=2**64), ProtoTag("uint64", FieldDescriptorProto.TYPE_UINT64)
]
Int32 = Annotated[
    int,
    Field(ge=-(2**31), lt=2**31),
    ProtoTag("int32", FieldDescriptorProto.TYPE_INT32),
]
Int64 = Annotated[
    int,
    Field(ge=-(2**63), lt=2**63),
    ProtoTag("int64", FieldDescriptorProto.TYPE_INT64),
]
Double = Annotated[float, ProtoTag("double", FieldDescriptorProto.TYPE_DOUBLE)]
