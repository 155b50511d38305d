"""
Application-level constants for the hub protocol and shutdown behavior.

These values define the wire protocol and internal timing and should NEVER
be changed via environment variables. For configurable values (hub path,
queue sizes, logging) see chathub/settings.py.
"""

# ============================================================================
# Hub Protocol Constants
# ============================================================================

# Every hub protocol message is terminated by the ASCII record separator
RECORD_SEPARATOR = "\x1e"

# Name and version of the only supported hub protocol
JSON_PROTOCOL_NAME = "json"
JSON_PROTOCOL_VERSION = 1

# Invocation target clients call to post a chat message
SEND_MESSAGE_TARGET = "SendMessage"

# Client-side method invoked for every broadcast chat message
RECEIVE_MESSAGE_TARGET = "ReceiveMessage"


# ============================================================================
# WebSocket Close Codes (RFC 6455)
# ============================================================================

WS_NORMAL_CLOSURE_CODE = 1000


# ============================================================================
# Keep-alive and Shutdown
# ============================================================================

# Seconds without outbound traffic after which a ping record is sent.
# Hub clients drop the connection after 30 seconds of server silence.
WS_KEEPALIVE_INTERVAL_SECONDS = 15

# Timeout (seconds) to flush outbound queues when closing connections
# Ensures connections don't hang indefinitely during shutdown
WS_CLOSE_TIMEOUT_SECONDS = 5
