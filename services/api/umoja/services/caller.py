"""Explicit caller context passed to every authoritative entry point."""

from dataclasses import dataclass

from umoja.models.enums import Role


@dataclass(frozen=True)
class CallerContext:
    user_id: int
    role: Role

    def is_party(self, user_id: int) -> bool:
        return self.user_id == user_id
