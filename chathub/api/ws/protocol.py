"""
Hub protocol: framing, handshake and message (de)serialization.

Messages are JSON objects terminated by the record separator (0x1E). A
single websocket frame may carry several records, and the handshake
request may be followed by regular messages in the same frame.

Protocol implementations use structural subtyping (HubProtocol), so any
class with the same methods can be returned from select_hub_protocol().
"""

import json
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from chathub.api.ws.constants import MessageType
from chathub.constants import (
    JSON_PROTOCOL_NAME,
    JSON_PROTOCOL_VERSION,
    RECORD_SEPARATOR,
)
from chathub.exceptions import HandshakeError, HubProtocolError
from chathub.schemas.hub import (
    CloseMessage,
    HandshakeRequest,
    HandshakeResponse,
    HubMessage,
    InvocationMessage,
    PingMessage,
)

# Message types a client is allowed to send
INCOMING_MESSAGE_MODELS: dict[int, type[HubMessage]] = {
    MessageType.INVOCATION: InvocationMessage,
    MessageType.PING: PingMessage,
    MessageType.CLOSE: CloseMessage,
}


def split_records(data: str) -> list[str]:
    """
    Split a text frame into records.

    Args:
        data: Raw websocket text frame.

    Returns:
        Record payloads without separators.

    Raises:
        HubProtocolError: If the frame does not end with a record separator.
    """
    if not data.endswith(RECORD_SEPARATOR):
        raise HubProtocolError("Message is incomplete.")

    return data.split(RECORD_SEPARATOR)[:-1]


def _load_record(record: str) -> dict[str, Any]:
    try:
        payload = json.loads(record)
    except ValueError as ex:
        raise HubProtocolError(f"Error reading JSON: {ex}") from ex

    if not isinstance(payload, dict):
        raise HubProtocolError("Message must be a JSON object.")

    return payload


def _write_record(model: BaseModel) -> str:
    return (
        model.model_dump_json(by_alias=True, exclude_none=True)
        + RECORD_SEPARATOR
    )


def parse_handshake_request(data: str) -> tuple[HandshakeRequest, str]:
    """
    Parse the handshake request at the start of the first frame.

    Args:
        data: First websocket text frame of the session.

    Returns:
        The handshake request and the rest of the frame (possibly empty).

    Raises:
        HandshakeError: If the handshake record is missing or malformed.
    """
    record, separator, remaining = data.partition(RECORD_SEPARATOR)
    if not separator:
        raise HandshakeError("Handshake request is incomplete.")

    try:
        request = HandshakeRequest.model_validate(_load_record(record))
    except (HubProtocolError, ValidationError) as ex:
        raise HandshakeError(
            "Handshake request could not be parsed."
        ) from ex

    return request, remaining


def write_handshake_response(error: str | None = None) -> str:
    """Serialize the handshake response, `{}` when there is no error."""
    return _write_record(HandshakeResponse(error=error))


class HubProtocol(Protocol):
    """Interface of a hub message protocol."""

    @property
    def name(self) -> str: ...

    @property
    def version(self) -> int: ...

    def parse_messages(self, data: str) -> list[HubMessage]:
        """
        Convert a websocket frame to hub messages.

        Raises:
            HubProtocolError: If any record in the frame is malformed.
        """
        ...

    def write_message(self, message: HubMessage) -> str:
        """Convert a hub message to a websocket text frame."""
        ...


class JSONHubProtocol:
    """
    JSON hub protocol (the only supported one).

    Argument values are never inspected, they are passed through exactly
    as the client sent them.
    """

    @property
    def name(self) -> str:
        return JSON_PROTOCOL_NAME

    @property
    def version(self) -> int:
        return JSON_PROTOCOL_VERSION

    def parse_messages(self, data: str) -> list[HubMessage]:
        messages: list[HubMessage] = []

        for record in split_records(data):
            payload = _load_record(record)
            message_type = payload.get("type")
            model = (
                INCOMING_MESSAGE_MODELS.get(message_type)
                if isinstance(message_type, int)
                else None
            )

            if model is None:
                raise HubProtocolError(
                    f"Unsupported message type: {message_type!r}."
                )

            try:
                messages.append(model.model_validate(payload))
            except ValidationError as ex:
                raise HubProtocolError(
                    f"Invalid {MessageType(message_type).name.lower()} message: "
                    f"{ex.error_count()} validation error(s)."
                ) from ex

        return messages

    def write_message(self, message: HubMessage) -> str:
        return _write_record(message)


def select_hub_protocol(name: str, version: int) -> HubProtocol:
    """
    Select the hub protocol requested in the handshake.

    Args:
        name: Protocol name from the handshake request.
        version: Protocol version from the handshake request.

    Returns:
        Matching HubProtocol implementation.

    Raises:
        HandshakeError: If the protocol or version is not supported.
    """
    if name != JSON_PROTOCOL_NAME:
        raise HandshakeError(
            f"The protocol '{name}' is not supported."
        )

    if version > JSON_PROTOCOL_VERSION:
        raise HandshakeError(
            f"The server does not support version {version} of the "
            f"'{name}' protocol."
        )

    return JSONHubProtocol()
