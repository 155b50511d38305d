from fastapi import APIRouter

from chathub.api.ws.handlers import load_handlers
from chathub.api.ws.hub import HubWebSocketEndpoint
from chathub.routing import hub_router
from chathub.settings import app_settings

load_handlers()

router = APIRouter()


@router.websocket_route(app_settings.HUB_PATH)
class ChatHub(HubWebSocketEndpoint):
    """
    Chat hub endpoint.

    Clients invoke `SendMessage(user, message)`, every connected client
    receives `ReceiveMessage(user, message)`.
    """

    method_router = hub_router
