import inspect
import re
import threading
from typing import Callable, Dict, Optional, Type, TypeVar

import grpc
from logzero import logger
from pydantic import BaseModel

from hello_grpc.codec import Codec
from hello_grpc.context import ServiceContext
from hello_grpc.exceptions import MalformedMessage, RPCException, UnknownMethod
from hello_grpc.proto import ProtoBuilder, ProtoDefine
from hello_grpc.utils import get_typed_signature, payload_to_str, snake_to_camel

T = TypeVar("T")
R = TypeVar("R")

_PACKAGE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class UnaryUnaryMethod:
    def __init__(
        self,
        endpoint: Callable,
        *,
        name: Optional[str] = None,
        request_model: Optional[Type[BaseModel]] = None,
        response_model: Optional[Type[BaseModel]] = None,
        description: str = "",
    ):
        self.name = name or snake_to_camel(endpoint.__name__)
        self.endpoint = endpoint
        self.request_model = request_model
        self.response_model = response_model
        self.description = description
        self.path = ""
        self.request_codec: Optional[Codec] = None
        self.response_codec: Optional[Codec] = None
        endpoint_signature = get_typed_signature(self.endpoint)
        if not (0 < len(endpoint_signature.parameters) <= 2):
            raise NotImplementedError("service method only supports 2 parameters")
        request, *keys = endpoint_signature.parameters.keys()
        self.request_param = endpoint_signature.parameters[request]
        self.context_param = endpoint_signature.parameters[keys[0]] if keys else None
        if self.request_param.annotation is not inspect.Signature.empty:
            self.request_model = self.request_model or self.request_param.annotation
        if endpoint_signature.return_annotation is not inspect.Signature.empty:
            self.response_model = (
                self.response_model or endpoint_signature.return_annotation
            )
        if not _is_model(self.request_model):
            raise ValueError("request_model must be a BaseModel subclass")
        if not _is_model(self.response_model):
            raise ValueError("response_model must be a BaseModel subclass")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.path or self.name})"

    def solve_params(self, request, context):
        values = {self.request_param.name: request}
        if self.context_param:
            values[self.context_param.name] = context
        return values

    def serialize_response(self, response) -> BaseModel:
        if isinstance(response, self.response_model):
            return response
        return self.response_model.model_validate(response)

    def __call__(self, payload: bytes, grpc_context: grpc.ServicerContext) -> bytes:
        context = ServiceContext(grpc_context, self)
        try:
            request = self.request_codec.decode(payload)
        except MalformedMessage as e:
            logger.warning(
                f"GRPC invoke {self.path}({payload_to_str(payload)}) [Malformed] -> {e.detail}"
            )
            context.abort(e.code, e.detail)
        try:
            result = self.endpoint(**self.solve_params(request, context))
            response = self.response_codec.encode(self.serialize_response(result))
        except RPCException as e:
            logger.warning(f"GRPC invoke {self.path}({request!r}) [Err] -> {e!r}")
            context.abort(e.code, e.detail)
        except Exception as e:
            if context.aborted:
                raise
            logger.exception(f"GRPC invoke {self.path}({request!r}) [Err] -> {e!r}")
            context.abort(grpc.StatusCode.INTERNAL, str(e))
        logger.info(
            f"GRPC invoke {self.path}({request!r}) [OK] {context.elapsed_time} ms"
        )
        return response


def _is_model(model) -> bool:
    return isinstance(model, type) and issubclass(model, BaseModel)


class Service:
    """A gRPC service: an open table of unary methods under one package."""

    def __init__(self, name: str, package: str):
        """
        Args:
            name: your grpc service name.
            package: protobuf package the service and its messages live in.
        """
        if not package or not _PACKAGE_RE.match(package):
            raise ValueError(f"Invalid protobuf package: {package!r}")
        self.name: str = name
        self.package: str = package
        self.methods: Dict[str, UnaryUnaryMethod] = {}
        self._builder: Optional[ProtoBuilder] = None
        self._lock = threading.Lock()

    @property
    def full_name(self) -> str:
        return f"{self.package}.{self.name}"

    def __str__(self):
        return f"{self.__class__.__name__}(name={self.full_name})"

    def copy(self):
        return self.__class__(self.name, self.package)

    def add_method(
        self, endpoint: Callable, *, name: Optional[str] = None, **kwargs
    ) -> UnaryUnaryMethod:
        method = UnaryUnaryMethod(endpoint, name=name, **kwargs)
        method.path = f"/{self.full_name}/{method.name}"
        with self._lock:
            self.methods[method.name] = method
            self._builder = None
        return method

    def unary_unary(
        self,
        name: Optional[str] = None,
        *,
        request_model: Optional[Type[BaseModel]] = None,
        response_model: Optional[Type[BaseModel]] = None,
        description: str = "",
    ):
        def decorator(endpoint: Callable[[T], R]) -> Callable[[T], R]:
            self.add_method(
                endpoint,
                name=name,
                request_model=request_model,
                response_model=response_model,
                description=description,
            )
            return endpoint

        return decorator

    def get_method(self, name: str) -> UnaryUnaryMethod:
        self.setup()
        try:
            return self.methods[name]
        except KeyError:
            raise UnknownMethod(f"Method '{name}' not found in {self}") from None

    def setup(self) -> ProtoBuilder:
        """Build descriptors for the current method table and attach codecs."""
        with self._lock:
            if self._builder is not None:
                return self._builder
            builder = ProtoBuilder(package=self.package)
            builder.add_service(self)
            message_classes = builder.build()
            for method in self.methods.values():
                method.request_codec = Codec(
                    method.request_model, message_classes[method.request_model]
                )
                method.response_codec = Codec(
                    method.response_model, message_classes[method.response_model]
                )
            self._builder = builder
            return builder

    def get_proto(self) -> ProtoDefine:
        return self.setup().get_proto()

    def add_to_server(self, server: grpc.Server) -> None:
        if not self.methods:
            logger.info(f"{self} add_to_server [Ignored] -> no methods")
            return None
        self.setup()
        handlers = {
            name: grpc.unary_unary_rpc_method_handler(method)
            for name, method in self.methods.items()
        }
        server.add_generic_rpc_handlers(
            (grpc.method_handlers_generic_handler(self.full_name, handlers),)
        )
        logger.info(f"{self} add_to_server success")
