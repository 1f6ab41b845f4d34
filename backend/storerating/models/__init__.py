from .auth import User, Role, RevokedToken
from .stores import Store, StoreMedia
from .ratings import Rating
from .security import SecurityEvent

__all__ = [
    'User', 'Role', 'RevokedToken',
    'Store', 'StoreMedia',
    'Rating',
    'SecurityEvent',
]
