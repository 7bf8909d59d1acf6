from __future__ import annotations

from relay_service.domain.entities.message import Message
from relay_service.domain.value_objects.enums import MessageKind
from relay_service.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        kind=MessageKind(model.kind),
        sender=model.sender,
        created_at=model.created_at,
        body=model.body,
        media_url=model.media_url,
    )


def entity_to_model(entity: Message) -> MessageModel:
    # id is left to the database identity
    return MessageModel(
        kind=entity.kind.value,
        sender=entity.sender,
        created_at=entity.created_at,
        body=entity.body,
        media_url=entity.media_url,
    )
