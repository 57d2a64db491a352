# -*- coding: utf-8 -*-
import threading
import time
from typing import Optional

import grpc
from grpc.aio._typing import ChannelArgumentType  # noqa
from logzero import logger
from pydantic import BaseModel

from hello_grpc.config import DEFAULT_TIMEOUT
from hello_grpc.exceptions import ConnectError, DeadlineExceeded, from_rpc_error
from hello_grpc.greeter import app as greeter_app
from hello_grpc.service import Service

_SETTLED_STATES = (
    grpc.ChannelConnectivity.READY,
    grpc.ChannelConnectivity.TRANSIENT_FAILURE,
    grpc.ChannelConnectivity.SHUTDOWN,
)


def wait_for_connection(channel: grpc.Channel, timeout: float) -> None:
    """Block until `channel` is connected.

    Raises `ConnectError` if the target refuses or cannot be resolved, and
    `DeadlineExceeded` if the connection is still pending after `timeout`.
    """
    settled = threading.Event()
    states = []

    def on_change(state: grpc.ChannelConnectivity):
        if state in _SETTLED_STATES and not settled.is_set():
            states.append(state)
            settled.set()

    channel.subscribe(on_change, try_to_connect=True)
    try:
        if not settled.wait(timeout):
            raise DeadlineExceeded(f"No connection within {timeout}s")
    finally:
        channel.unsubscribe(on_change)
    if states[0] is not grpc.ChannelConnectivity.READY:
        raise ConnectError(f"Connection failed: {states[0].value[1]}")


class Client:
    """
    Calls the methods of a `Service` on a remote server.

    Every call opens its own channel and closes it before returning, whatever
    the outcome. Calls block the calling thread; issue concurrent calls from
    separate threads.
    """

    def __init__(
        self,
        target: str,
        service: Service,
        *,
        options: Optional[ChannelArgumentType] = None,
    ):
        self.target = target
        self.service = service
        self.options = options

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(target={self.target}, service={self.service.full_name})"

    def call(
        self, method: str, request: BaseModel, timeout: float = DEFAULT_TIMEOUT
    ) -> BaseModel:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        service_method = self.service.get_method(method)
        payload = service_method.request_codec.encode(request)
        deadline = time.monotonic() + timeout
        with grpc.insecure_channel(self.target, options=self.options) as channel:
            try:
                wait_for_connection(channel, timeout)
            except (ConnectError, DeadlineExceeded) as e:
                logger.warning(f"GRPC call {service_method.path} -> {self.target} [Err] -> {e!r}")
                raise
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise DeadlineExceeded(f"Deadline of {timeout}s spent connecting")
            rpc = channel.unary_unary(service_method.path)
            try:
                response = rpc(payload, timeout=remaining)
            except grpc.RpcError as e:
                error = from_rpc_error(e)
                logger.warning(f"GRPC call {service_method.path} -> {self.target} [Err] -> {error!r}")
                raise error from e
        return service_method.response_codec.decode(response)


def call(
    endpoint: str,
    method: str,
    request: BaseModel,
    timeout: float = DEFAULT_TIMEOUT,
    service: Optional[Service] = None,
) -> BaseModel:
    """One-shot call; uses the greeter service unless another is given."""
    service = service or greeter_app.service
    return Client(endpoint, service).call(method, request, timeout)
