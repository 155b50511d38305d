"""
Tests for hub protocol framing, handshake parsing and message encoding.
"""

import json

import pytest

from chathub.api.ws.constants import MessageType
from chathub.api.ws.protocol import (
    JSONHubProtocol,
    parse_handshake_request,
    select_hub_protocol,
    split_records,
    write_handshake_response,
)
from chathub.constants import RECORD_SEPARATOR as RS
from chathub.exceptions import HandshakeError, HubProtocolError
from chathub.schemas.hub import (
    CloseMessage,
    CompletionMessage,
    InvocationMessage,
    PingMessage,
)


class TestFraming:
    def test_split_records(self):
        assert split_records(f'{{"a":1}}{RS}{{"b":2}}{RS}') == [
            '{"a":1}',
            '{"b":2}',
        ]

    def test_split_records_requires_trailing_separator(self):
        with pytest.raises(HubProtocolError, match="incomplete"):
            split_records(f'{{"a":1}}{RS}{{"b":2}}')


class TestHandshake:
    def test_parse_handshake_request(self):
        request, remaining = parse_handshake_request(
            f'{{"protocol":"json","version":1}}{RS}'
        )

        assert request.protocol == "json"
        assert request.version == 1
        assert remaining == ""

    def test_parse_handshake_with_trailing_messages(self):
        ping = f'{{"type":6}}{RS}'

        _, remaining = parse_handshake_request(
            f'{{"protocol":"json","version":1}}{RS}{ping}'
        )

        assert remaining == ping

    @pytest.mark.parametrize(
        "data",
        [
            '{"protocol":"json","version":1}',
            f"not json{RS}",
            f'{{"version":1}}{RS}',
            f"[1, 2]{RS}",
        ],
    )
    def test_parse_invalid_handshake(self, data):
        with pytest.raises(HandshakeError):
            parse_handshake_request(data)

    def test_handshake_response(self):
        assert write_handshake_response() == "{}" + RS
        assert json.loads(
            write_handshake_response("nope").rstrip(RS)
        ) == {"error": "nope"}

    def test_select_json_protocol(self):
        protocol = select_hub_protocol("json", 1)

        assert protocol.name == "json"
        assert protocol.version == 1

    def test_select_unknown_protocol(self):
        with pytest.raises(HandshakeError, match="'messagepack' is not supported"):
            select_hub_protocol("messagepack", 1)

    def test_select_unsupported_version(self):
        with pytest.raises(HandshakeError, match="version 2"):
            select_hub_protocol("json", 2)


class TestJSONHubProtocol:
    def setup_method(self):
        self.protocol = JSONHubProtocol()

    def test_parse_invocation(self):
        [message] = self.protocol.parse_messages(
            '{"type":1,"target":"SendMessage","arguments":["Alice","hi"],'
            f'"invocationId":"0"}}{RS}'
        )

        assert isinstance(message, InvocationMessage)
        assert message.type == MessageType.INVOCATION
        assert message.target == "SendMessage"
        assert message.arguments == ["Alice", "hi"]
        assert message.invocation_id == "0"

    def test_parse_invocation_without_id(self):
        [message] = self.protocol.parse_messages(
            f'{{"type":1,"target":"SendMessage","arguments":[]}}{RS}'
        )

        assert message.invocation_id is None

    def test_parse_several_records(self):
        messages = self.protocol.parse_messages(
            f'{{"type":6}}{RS}{{"type":7}}{RS}'
        )

        assert [type(m) for m in messages] == [PingMessage, CloseMessage]

    @pytest.mark.parametrize(
        "record",
        [
            "{not json",
            '"just a string"',
            '{"target":"SendMessage"}',
            '{"type":"1"}',
            '{"type":3,"invocationId":"1"}',
            '{"type":99}',
            '{"type":1,"arguments":[]}',
        ],
    )
    def test_parse_invalid_message(self, record):
        with pytest.raises(HubProtocolError):
            self.protocol.parse_messages(record + RS)

    def test_write_invocation(self):
        frame = self.protocol.write_message(
            InvocationMessage(
                target="ReceiveMessage", arguments=["Alice", "hi"]
            )
        )

        assert frame.endswith(RS)
        assert json.loads(frame.rstrip(RS)) == {
            "type": 1,
            "target": "ReceiveMessage",
            "arguments": ["Alice", "hi"],
        }

    def test_write_completion_uses_wire_names(self):
        frame = self.protocol.write_message(
            CompletionMessage(invocation_id="7", error="failed")
        )

        assert json.loads(frame.rstrip(RS)) == {
            "type": 3,
            "invocationId": "7",
            "error": "failed",
        }

    def test_write_close(self):
        frame = self.protocol.write_message(
            CloseMessage(error="bad", allow_reconnect=False)
        )

        assert json.loads(frame.rstrip(RS)) == {
            "type": 7,
            "error": "bad",
            "allowReconnect": False,
        }
