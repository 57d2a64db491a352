# -*- coding: utf-8 -*-
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 50051
DEFAULT_TARGET = f"{DEFAULT_HOST}:{DEFAULT_PORT}"
# seconds
DEFAULT_TIMEOUT = 1.0
DEFAULT_MAX_WORKERS = 10
