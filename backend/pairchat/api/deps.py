from typing import Annotated

from fastapi import Depends
from fastapi.requests import HTTPConnection

from pairchat.services.chat_hub import ChatHub
from pairchat.services.gateway import ConnectionGateway


def get_chat_hub(connection: HTTPConnection) -> ChatHub:
    return connection.app.state.chat_hub


def get_connection_gateway(connection: HTTPConnection) -> ConnectionGateway:
    return connection.app.state.connection_gateway


HubDep = Annotated[ChatHub, Depends(get_chat_hub)]
GatewayDep = Annotated[ConnectionGateway, Depends(get_connection_gateway)]
