from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Money:
    amount_cents: int
    currency: str

    def __post_init__(self) -> None:
        if self.amount_cents < 0:
            raise ValueError("amount_cents must be >= 0")
        if len(self.currency) != 3 or not self.currency.isalpha() or not self.currency.isupper():
            raise ValueError("currency must be a 3-letter uppercase code")

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(amount_cents=0, currency=currency)

    def plus(self, other: Money) -> Money:
        self._ensure_same_currency(other)
        return Money(amount_cents=self.amount_cents + other.amount_cents, currency=self.currency)

    def minus(self, other: Money) -> Money:
        self._ensure_same_currency(other)
        return Money(amount_cents=self.amount_cents - other.amount_cents, currency=self.currency)

    def times(self, factor: int) -> Money:
        return Money(amount_cents=self.amount_cents * factor, currency=self.currency)

    def divided_by(self, parts: int) -> Money:
        """Split into `parts` and round half up to the cent (round2 on a cents value)."""
        if parts < 1:
            raise ValueError("parts must be >= 1")
        return Money(
            amount_cents=(self.amount_cents * 2 + parts) // (parts * 2),
            currency=self.currency,
        )

    def is_zero(self) -> bool:
        return self.amount_cents == 0

    def _ensure_same_currency(self, other: Money) -> None:
        if other.currency != self.currency:
            raise ValueError(f"currency mismatch: {self.currency} != {other.currency}")
