# -*- coding: utf-8 -*-
import inspect
import typing
from typing import Any, Callable


def snake_to_camel(name):
    parts = name.split("_")
    camel_name = "".join(word.capitalize() for word in parts)
    return camel_name


def payload_to_str(payload: bytes, limit: int = 32) -> str:
    preview = payload[:limit].hex()
    if len(payload) > limit:
        preview += "..."
    return f"<RawMessage({len(payload)} bytes) {preview}>"


def message_to_pydantic(message, pydantic_model):
    """Convert protobuf message to pydantic model"""
    values = {
        field.name: getattr(message, field.name) for field in message.DESCRIPTOR.fields
    }
    return pydantic_model.model_validate(values)


def pydantic_to_message(schema, message_cls):
    """Convert pydantic model to protobuf message"""
    values = {k: v for k, v in schema.model_dump().items() if v is not None}
    return message_cls(**values)


def get_typed_signature(call: Callable[..., Any]) -> inspect.Signature:
    signature = inspect.signature(call)
    try:
        hints = typing.get_type_hints(call, include_extras=True)
    except NameError:
        # unresolvable forward references, fall back to the raw annotations
        hints = {}
    typed_params = [
        inspect.Parameter(
            name=param.name,
            kind=param.kind,
            default=param.default,
            annotation=hints.get(param.name, param.annotation),
        )
        for param in signature.parameters.values()
    ]
    return inspect.Signature(
        typed_params,
        return_annotation=hints.get("return", signature.return_annotation),
    )
