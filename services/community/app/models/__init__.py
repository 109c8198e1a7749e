from app.models.comment import Comment
from app.models.trick import Trick

__all__ = [
    "Trick",
    "Comment",
]
