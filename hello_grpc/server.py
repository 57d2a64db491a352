# -*- coding: utf-8 -*-
from concurrent import futures
from enum import Enum
from typing import Iterable, Optional

import grpc
from grpc.aio._typing import ChannelArgumentType  # noqa
from logzero import logger

from hello_grpc.config import DEFAULT_HOST, DEFAULT_MAX_WORKERS, DEFAULT_PORT
from hello_grpc.exceptions import BindError
from hello_grpc.service import Service
from hello_grpc.signals import rpc_shutdown, rpc_startup


class ServerState(Enum):
    UNBOUND = "unbound"
    LISTENING = "listening"
    SHUTDOWN = "shutdown"


class Server(object):
    """
    A listening endpoint serving one or more services.

    Each accepted call runs on a worker thread of its own, so a slow call
    never holds up another one.

    ## Example

    ```python
    from hello_grpc import Server
    from hello_grpc.greeter import app

    with Server([app.service]) as server:
        port = server.bind("127.0.0.1", 0)
        server.wait_for_termination()
    ```
    """

    def __init__(
        self,
        services: Iterable[Service],
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        options: Optional[ChannelArgumentType] = None,
    ):
        """
        Args:
            services: services whose methods this server dispatches to.
            max_workers: size of the thread pool handling calls.
            options: extra grpc channel arguments for the server.
        """
        self.services = list(services)
        self.max_workers = max_workers
        self.options = list(options or [])
        self.state = ServerState.UNBOUND
        self.address: Optional[str] = None
        self.port: Optional[int] = None
        self._server: Optional[grpc.Server] = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(address={self.address}, state={self.state.value})"

    def bind(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> int:
        """Claim ``host:port`` and start serving. Port 0 picks a free port.

        Returns the port actually bound. Raises `BindError` when the address
        is invalid or already in use.
        """
        if self.state is not ServerState.UNBOUND:
            raise RuntimeError(f"{self} cannot bind: already {self.state.value}")
        # without this grpc lets a second server share an in-use port
        options = [("grpc.so_reuseport", 0), *self.options]
        server = grpc.server(
            futures.ThreadPoolExecutor(max_workers=self.max_workers),
            options=options,
        )
        for service in self.services:
            service.add_to_server(server)
        address = f"{host}:{port}"
        try:
            bound_port = server.add_insecure_port(address)
        except RuntimeError as e:
            server.stop(None)
            raise BindError(f"Failed to bind {address}: {e}") from e
        if not bound_port:
            server.stop(None)
            raise BindError(f"Failed to bind {address}")
        server.start()
        self._server = server
        self.port = bound_port
        self.address = f"{host}:{bound_port}"
        self.state = ServerState.LISTENING
        logger.info(f"Running grpc on {self.address}")
        rpc_startup.send(self, address=self.address)
        return bound_port

    def wait_for_termination(self, timeout: Optional[float] = None) -> bool:
        """Block until the server stops. Returns True if `timeout` elapsed first."""
        if self._server is None:
            raise RuntimeError(f"{self} is not listening")
        return self._server.wait_for_termination(timeout)

    def shutdown(self, grace: Optional[float] = None) -> None:
        """Release the endpoint.

        In-flight calls get `grace` seconds to finish; the rest are cancelled
        and their clients see the connection close.
        """
        if self.state is not ServerState.LISTENING:
            self.state = ServerState.SHUTDOWN
            return
        self.state = ServerState.SHUTDOWN
        self._server.stop(grace).wait()
        logger.info(f"Stopped grpc on {self.address}")
        rpc_shutdown.send(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.shutdown()
