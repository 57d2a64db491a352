# -*- coding: utf-8 -*-
from hello_grpc import Client, DeadlineExceeded, HelloRequest
from hello_grpc.greeter import app

client = Client("127.0.0.1:50051", app.service)
try:
    response = client.call("SayHello", HelloRequest(name="hello grpc"), timeout=1.0)
    print("Greeter client received: ", response.message)
except DeadlineExceeded:
    print("Greeter did not answer in time")
