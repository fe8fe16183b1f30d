from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class Presence:
    users: Dict[str, Dict] = field(default_factory=dict)

    def add(self, user_id: str, meta: Dict | None = None) -> None:
        self.users[user_id] = {"meta": meta or {}}

    def remove(self, user_id: str) -> None:
        self.users.pop(user_id, None)

    def clear(self) -> None:
        self.users.clear()

    def list_sorted(self) -> List[str]:
        return sorted(self.users.keys())

    def __contains__(self, user_id: object) -> bool:
        return user_id in self.users

    def __len__(self) -> int:
        return len(self.users)
