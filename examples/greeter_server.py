from hello_grpc import HelloGRPC, HelloReply, HelloRequest

app = HelloGRPC(service_name="Greeter", package="helloworld")


@app.unary_unary()
def say_hello(request: HelloRequest) -> HelloReply:
    return HelloReply(message=f"Hello {request.name}")


if __name__ == "__main__":
    print(app.get_proto().render_proto_file())
    app.run()
