# -*- coding: utf-8 -*-
"""Entry points of the reference deployment.

Both commands take no flags: the server listens on the fixed address and
the client sends one ``SayHello`` with a fixed timeout. Startup failures
are logged and turned into a non-zero exit status.
"""
import sys

from logzero import logger

from hello_grpc.client import Client
from hello_grpc.config import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TARGET, DEFAULT_TIMEOUT
from hello_grpc.exceptions import BindError, RPCException
from hello_grpc.greeter import app
from hello_grpc.schema import HelloRequest


def serve() -> None:
    try:
        app.run(DEFAULT_HOST, DEFAULT_PORT)
    except BindError as e:
        logger.error(f"Server failed to start: {e.detail}")
        sys.exit(1)


def say_hello() -> None:
    client = Client(DEFAULT_TARGET, app.service)
    try:
        reply = client.call("SayHello", HelloRequest(name="World"), timeout=DEFAULT_TIMEOUT)
    except RPCException as e:
        logger.error(f"Could not greet: {e!r}")
        sys.exit(1)
    logger.info(f"Greeting: {reply.message}")
