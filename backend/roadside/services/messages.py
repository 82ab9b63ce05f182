from typing import List

from roadside.models import Message, MessageCreate
from roadside.services.entity_store import EntityStore
from roadside.services.errors import DispatchNotFoundError, DispatchValidationError


def post_message(store: EntityStore, draft: MessageCreate) -> Message:
    if not draft.message.strip():
        raise DispatchValidationError("Message text is required")
    if store.get_request(draft.request_id) is None:
        raise DispatchNotFoundError("Service request not found")
    return store.create_message(draft)


def list_request_messages(store: EntityStore, request_id: int) -> List[Message]:
    if store.get_request(request_id) is None:
        raise DispatchNotFoundError("Service request not found")
    return store.list_messages_by_request(request_id)
