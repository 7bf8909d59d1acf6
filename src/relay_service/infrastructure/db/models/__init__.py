"""Import all models so Base.metadata sees them."""
from relay_service.infrastructure.db.models.message import MessageModel

__all__ = [
    "MessageModel",
]
