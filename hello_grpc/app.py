# -*- coding: utf-8 -*-
from typing import Callable, Optional, Type

from logzero import logger
from pydantic import BaseModel

from hello_grpc.config import DEFAULT_HOST, DEFAULT_MAX_WORKERS, DEFAULT_PORT
from hello_grpc.proto import ProtoDefine
from hello_grpc.server import Server
from hello_grpc.service import Service


class HelloGRPC(object):
    """
    `HelloGRPC` app class, the main entrypoint to use hello_grpc.

    ## Example

    ```python
    from hello_grpc import HelloGRPC

    app = HelloGRPC(service_name="Greeter", package="helloworld")
    ```
    """

    def __init__(
        self,
        *,
        service_name: str = "Greeter",
        package: str = "helloworld",
    ):
        """
        Args:
            service_name: default grpc service name.
            package: protobuf package of the default service.
        """
        self.service = Service(name=service_name, package=package)
        self._services: dict[str, Service] = {self.service.full_name: self.service}

    @property
    def services(self) -> list[Service]:
        return list(self._services.values())

    def unary_unary(
        self,
        name: Optional[str] = None,
        *,
        request_model: Optional[Type[BaseModel]] = None,
        response_model: Optional[Type[BaseModel]] = None,
        description: str = "",
    ):
        def decorator(endpoint: Callable) -> Callable:
            self.service.add_method(
                endpoint,
                name=name,
                request_model=request_model,
                response_model=response_model,
                description=description,
            )
            return endpoint

        return decorator

    def add_service(self, service: Service) -> None:
        if service.full_name not in self._services:
            self._services[service.full_name] = service.copy()
        target = self._services[service.full_name]
        for name, method in service.methods.items():
            target.add_method(
                method.endpoint,
                name=name,
                request_model=method.request_model,
                response_model=method.response_model,
                description=method.description,
            )

    def get_proto(self, package: Optional[str] = None) -> ProtoDefine:
        """The protobuf contract of every service in `package`
        (the default service's package if omitted)."""
        package = package or self.service.package
        services = [s for s in self.services if s.package == package and s.methods]
        if not services:
            raise ValueError(f"No services with methods in package {package!r}")
        proto_define = services[0].get_proto().model_copy(deep=True)
        for service in services[1:]:
            other = service.get_proto()
            proto_define.services.extend(other.services)
            for key, message in other.messages.items():
                proto_define.messages.setdefault(key, message)
        return proto_define

    def create_server(self, *, max_workers: int = DEFAULT_MAX_WORKERS) -> Server:
        return Server(self.services, max_workers=max_workers)

    def run(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """Serve until interrupted. `BindError` propagates to the caller."""
        server = self.create_server(max_workers=max_workers)
        server.bind(host, port)
        try:
            server.wait_for_termination()
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
        finally:
            server.shutdown()
