from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chathub.api.ws.constants import MessageType


class HandshakeRequest(BaseModel):  # type: ignore[misc]
    """
    First record sent by a client.

    Attributes:
        protocol: Hub protocol name, e.g. "json".
        version: Hub protocol version.
    """

    protocol: str
    version: int


class HandshakeResponse(BaseModel):  # type: ignore[misc]
    """Server answer to the handshake, empty on success."""

    error: str | None = None


class HubMessage(BaseModel):  # type: ignore[misc]
    model_config = ConfigDict(populate_by_name=True)

    type: MessageType


class InvocationMessage(HubMessage):
    """
    Call of a hub method (client to server) or client method (server to client).

    Attributes:
        target: Name of the method to invoke.
        arguments: Positional arguments, passed through unchanged.
        invocation_id: Present when the caller expects a completion.
    """

    type: MessageType = MessageType.INVOCATION
    target: str
    arguments: list[Any] = Field(default_factory=list)
    invocation_id: str | None = Field(default=None, alias="invocationId")


class CompletionMessage(HubMessage):
    """Result of an invocation that carried an invocationId."""

    type: MessageType = MessageType.COMPLETION
    invocation_id: str = Field(alias="invocationId")
    result: Any = None
    error: str | None = None


class PingMessage(HubMessage):
    type: MessageType = MessageType.PING


class CloseMessage(HubMessage):
    type: MessageType = MessageType.CLOSE
    error: str | None = None
    allow_reconnect: bool | None = Field(default=None, alias="allowReconnect")
