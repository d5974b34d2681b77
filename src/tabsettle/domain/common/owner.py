from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Owner:
    """A diner at a table: a registered user, an anonymous guest, or just a display name."""

    user_id: str | None = None
    guest_id: str | None = None
    guest_name: str | None = None

    def __post_init__(self) -> None:
        if not (self.user_id or self.guest_id or self.guest_name):
            raise ValueError("owner requires user_id, guest_id or guest_name")

    @property
    def key(self) -> str:
        if self.user_id:
            return f"user:{self.user_id}"
        if self.guest_id:
            return f"guest:{self.guest_id}"
        return f"name:{self.guest_name}"

    @property
    def display_name(self) -> str:
        return self.guest_name or self.user_id or self.guest_id or ""

    def matches(self, other: Owner) -> bool:
        if self.user_id and other.user_id:
            return self.user_id == other.user_id
        if self.guest_id and other.guest_id:
            return self.guest_id == other.guest_id
        return bool(self.guest_name) and self.guest_name == other.guest_name

    def merged_with(self, other: Owner) -> Owner:
        return Owner(
            user_id=self.user_id or other.user_id,
            guest_id=self.guest_id or other.guest_id,
            guest_name=self.guest_name or other.guest_name,
        )

    def linked_to_user(self, user_id: str) -> Owner:
        return replace(self, user_id=user_id)
