from pydantic import BaseModel

from hello_grpc import HelloGRPC, ServiceContext
from hello_grpc.types import Int32

app = HelloGRPC(service_name="Calculator", package="calc")


class AddRequest(BaseModel):
    a: Int32
    b: Int32


class AddReply(BaseModel):
    total: int


@app.unary_unary()
def add(request: AddRequest, context: ServiceContext) -> AddReply:
    print(f"{context.peer()} asks for {request.a} + {request.b}")
    return AddReply(total=request.a + request.b)


if __name__ == "__main__":
    app.run(port=50052)
