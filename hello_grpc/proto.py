# -*- coding: utf-8 -*-
import typing
from typing import TYPE_CHECKING, Any, Dict, Type

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from jinja2 import Template
from pydantic import BaseModel
from typing_extensions import get_args, get_origin

from hello_grpc.types import PYTHON_TO_PROTOBUF_TYPES, ProtoTag

if TYPE_CHECKING:
    from hello_grpc.service import Service

PROTO_TEMPLATE = """
syntax = "proto3";

package {{ proto_define.package }};
{% for message in proto_define.messages.values() %}
message {{ message.name }} {
    {% for field in message.fields -%}
    {{ field.proto_string }};
    {%- if not loop.last %}
    {% endif %}
    {%- endfor %}
}
{% endfor %}
{% for service in proto_define.services %}
service {{ service.name }} {
    {% for method in service.methods -%}
    {% if method.description %}// {{ method.description | replace("\\n", "\\n    // ") }}
    {% endif %}rpc {{ method.name }}({{ method.request }}) returns ({{ method.response }});
    {%- if not loop.last %}
    {% endif %}
    {%- endfor %}
}
{% endfor %}
"""


class ProtoField(BaseModel):
    name: str
    index: int
    type: str = ""
    field_type: int = 0

    @property
    def proto_string(self):
        return f"{self.type} {self.name} = {self.index}".strip()


class ProtoStruct(BaseModel):
    name: str
    fields: list[ProtoField]


class ProtoMethod(BaseModel):
    name: str
    request: str
    response: str
    description: str = ""


class ProtoService(BaseModel):
    name: str
    methods: list[ProtoMethod]


class ProtoDefine(BaseModel):
    package: str
    services: list[ProtoService]
    messages: dict[Any, ProtoStruct]

    @property
    def file_name(self) -> str:
        return f"{self.package}.proto"

    def render(self, proto_template) -> str:
        template = Template(proto_template)
        return template.render(proto_define=self)

    def render_proto_file(self):
        return self.render(PROTO_TEMPLATE)

    def to_file_descriptor_proto(self) -> descriptor_pb2.FileDescriptorProto:
        file_proto = descriptor_pb2.FileDescriptorProto(
            name=self.file_name, package=self.package, syntax="proto3"
        )
        for message in self.messages.values():
            message_proto = file_proto.message_type.add(name=message.name)
            for field in message.fields:
                message_proto.field.add(
                    name=field.name,
                    number=field.index,
                    type=field.field_type,
                    label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
                )
        for service in self.services:
            service_proto = file_proto.service.add(name=service.name)
            for method in service.methods:
                service_proto.method.add(
                    name=method.name,
                    input_type=f".{self.package}.{method.request}",
                    output_type=f".{self.package}.{method.response}",
                )
        return file_proto


class ProtoBuilder:
    """Describe pydantic schemas and services as a protobuf file.

    Every builder registers into its own descriptor pool, so two services
    that happen to share a package and name never clash in one process.
    """

    def __init__(self, package: str):
        self._proto_define = ProtoDefine(package=package, services=[], messages={})
        self._pool = descriptor_pool.DescriptorPool()
        self._message_classes: Dict[Type[BaseModel], type] = {}

    def add_service(self, service: "Service"):
        srv = ProtoService(name=service.name, methods=[])
        self._proto_define.services.append(srv)
        for name, method in service.methods.items():
            request = self.convert_message(method.request_model)
            response = self.convert_message(method.response_model)
            srv.methods.append(
                ProtoMethod(
                    name=name,
                    request=request.name,
                    response=response.name,
                    description=method.description,
                )
            )
        return self

    def get_proto(self) -> ProtoDefine:
        return self._proto_define

    def build(self) -> Dict[Type[BaseModel], type]:
        """Register the collected definitions and return the concrete message
        class generated for each pydantic schema."""
        if self._message_classes:
            return self._message_classes
        file_proto = self._proto_define.to_file_descriptor_proto()
        self._pool.AddSerializedFile(file_proto.SerializeToString())
        for schema, struct in self._proto_define.messages.items():
            descriptor = self._pool.FindMessageTypeByName(
                f"{self._proto_define.package}.{struct.name}"
            )
            self._message_classes[schema] = message_factory.GetMessageClass(descriptor)
        return self._message_classes

    def convert_message(self, schema: Type[BaseModel]) -> ProtoStruct:
        if schema in self._proto_define.messages:
            return self._proto_define.messages[schema]
        if any(
            struct.name == schema.__name__
            for struct in self._proto_define.messages.values()
        ):
            raise ValueError(f"Duplicate message name: {schema.__name__}")
        message = ProtoStruct(name=schema.__name__, fields=[])
        hints = typing.get_type_hints(schema, include_extras=True)
        for i, name in enumerate(schema.model_fields.keys(), 1):
            tag = self._get_type_tag(hints[name])
            message.fields.append(
                ProtoField(name=name, type=tag.name, field_type=tag.field_type, index=i)
            )
        self._proto_define.messages[schema] = message
        return message

    def _get_type_tag(self, type_: Any) -> ProtoTag:
        origin = get_origin(type_)
        args = get_args(type_)
        if type_ in PYTHON_TO_PROTOBUF_TYPES:
            return PYTHON_TO_PROTOBUF_TYPES[type_]
        if origin is typing.Annotated:
            for tag in args[1:]:
                if isinstance(tag, ProtoTag):
                    return tag
            return self._get_type_tag(args[0])
        if origin is typing.Union:
            _args = [i for i in args if i is not type(None)]
            if len(_args) == 1:
                return self._get_type_tag(_args[0])
        raise ValueError(f"Unsupported type: {type_}")
