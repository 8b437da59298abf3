from fastapi.requests import HTTPConnection
from app.realtime.connection_registry import ConnectionRegistry
from app.realtime.notification_dispatcher import NotificationDispatcher
from app.stores.entity_store import EntityStore

# Shared collaborators are built once in the lifespan and hung on app.state.
# HTTPConnection covers both plain requests and websocket handshakes.


def get_entity_store(connection: HTTPConnection) -> EntityStore:
    return connection.app.state.entity_store


def get_connection_registry(connection: HTTPConnection) -> ConnectionRegistry:
    return connection.app.state.connection_registry


def get_notification_dispatcher(connection: HTTPConnection) -> NotificationDispatcher:
    return connection.app.state.notification_dispatcher
