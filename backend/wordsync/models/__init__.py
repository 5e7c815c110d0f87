from wordsync.models.user import User
from wordsync.models.card import Card

__all__ = ["User", "Card"]
