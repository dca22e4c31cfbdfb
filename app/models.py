from dataclasses import dataclass
from typing import Any, Dict

DEFAULT_ANIMATION = 'idle-down'

# Fields an `update` message may overwrite
UPDATABLE_FIELDS = ('x', 'y', 'animation')


@dataclass
class Player:
    id: str
    username: str
    x: float = 0
    y: float = 0
    animation: str = DEFAULT_ANIMATION

    def apply_update(self, fields: Dict[str, Any]) -> None:
        """Overwrite only the updatable fields present in `fields`."""
        for name in UPDATABLE_FIELDS:
            if name in fields:
                setattr(self, name, fields[name])

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'x': self.x,
            'y': self.y,
            'animation': self.animation,
        }
