from chathub.constants import SEND_MESSAGE_TARGET
from chathub.logging import logger
from chathub.routing import HubCallerContext, hub_router

# SendMessage(user: string, message: string), any string content is accepted
send_message_schema = {
    "type": "array",
    "prefixItems": [{"type": "string"}, {"type": "string"}],
}


@hub_router.register(SEND_MESSAGE_TARGET, json_schema=send_message_schema)
async def send_message(
    context: HubCallerContext, user: str, message: str
) -> None:
    """
    Broadcasts `ReceiveMessage(user, message)` to every connected client,
    the caller included. Both values are passed through unchanged.
    """
    recipients = context.dispatcher.send_message(user, message)
    logger.debug(
        f"Message from connection {context.connection_id} queued for "
        f"{recipients} clients"
    )
