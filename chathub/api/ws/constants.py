from enum import IntEnum


class MessageType(IntEnum):
    """
    Hub protocol message types.

    Only invocations, pings and close messages are accepted from clients.
    Streaming types exist on the wire but are not supported by this hub.

    Example:
        >>> str(MessageType.INVOCATION)
        'MessageType.INVOCATION<1>'
    """

    INVOCATION = 1
    STREAM_ITEM = 2
    COMPLETION = 3
    STREAM_INVOCATION = 4
    CANCEL_INVOCATION = 5
    PING = 6
    CLOSE = 7

    def __str__(self):
        return f"{__class__.__name__}.{self.name}<{self.value}>"
