"""
Custom exception classes for the hub.

Protocol errors end the websocket session, method errors are reported
back to the caller as completion errors.
"""


class HubError(Exception):
    """Base class for all hub errors."""

    pass


class HandshakeError(HubError):
    """
    Handshake failed.

    Raised when the first record is not a valid handshake request or asks
    for a protocol the server does not speak.
    """

    pass


class HubProtocolError(HubError):
    """
    Malformed hub message.

    Raised for records that are not valid JSON, have an unknown message
    type or do not match the message schema.
    """

    pass


class HubMethodError(HubError):
    """
    Invocation failed.

    The message is sent to the caller as the completion error, so it must
    not leak server internals.
    """

    pass
