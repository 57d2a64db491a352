# -*- coding: utf-8 -*-
from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    model_config = ConfigDict(frozen=True)


class HelloRequest(BaseSchema):
    name: str = ""


class HelloReply(BaseSchema):
    message: str = ""
