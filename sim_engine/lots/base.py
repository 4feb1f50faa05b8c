"""
TAILDRAW - Draw Engine Base Types

Request validation, the random source contract and the draw result shared
by every component of the engine.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from sim_engine.lots.errors import InvalidInput
from sim_engine.lots.membership import count_winners, is_winner

U32_MAX = 0xFFFFFFFF
U128_MAX = (1 << 128) - 1


class RandomSource(ABC):
    """Stateful supplier of 32-bit pseudorandom values.

    Implementations mix the caller salt with their own history; the engine
    only assumes values are roughly uniform over [0, 2^32).
    """

    @abstractmethod
    def next(self, salt: int) -> int:
        """Return the next value in [0, 2^32)."""
        ...


class DrawRequest(BaseModel):
    """Validated input of one draw."""
    model_config = ConfigDict(strict=True, frozen=True)

    salt: int = Field(0, ge=0, le=U32_MAX)
    target_quantity: int = Field(..., gt=0, le=U128_MAX)
    total_quantity: int = Field(..., gt=0, le=U128_MAX)

    @model_validator(mode="after")
    def check_target_below_total(self):
        if self.target_quantity >= self.total_quantity:
            raise ValueError(
                f"target_quantity ({self.target_quantity}) must be less than "
                f"total_quantity ({self.total_quantity})"
            )
        return self

    @classmethod
    def build(cls, salt: int, target_quantity: int, total_quantity: int) -> "DrawRequest":
        """Validate raw arguments, reporting any problem as InvalidInput."""
        try:
            return cls(salt=salt, target_quantity=target_quantity,
                       total_quantity=total_quantity)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidInput(problems) from e


@dataclass
class DrawResult:
    """Outcome of one draw.

    `patterns` maps tail value to tail length. When `is_winning_set` is
    False the tails mark the losing tickets instead of the winners.
    """
    patterns: dict
    is_winning_set: bool
    salt: int
    target_quantity: int
    total_quantity: int
    working_target: int
    digit_count: int
    win_rate: int
    matched_quantity: int
    replenished: int = 0
    rollbacks: int = 0
    draws: int = 0

    def as_tuple(self) -> tuple:
        return dict(self.patterns), self.is_winning_set

    def is_winner(self, serial: int) -> bool:
        return is_winner(serial, self.patterns, self.is_winning_set)

    def count_winners(self, start: int = 1, end: int = None) -> int:
        """Winners among serials [start, end], clamped to the pool."""
        end = self.total_quantity if end is None else min(end, self.total_quantity)
        return count_winners(start, end, self.patterns, self.is_winning_set)

    def to_dict(self) -> dict:
        return {
            "salt": self.salt,
            "target_quantity": self.target_quantity,
            "total_quantity": self.total_quantity,
            "is_winning_set": self.is_winning_set,
            "working_target": self.working_target,
            "digit_count": self.digit_count,
            "win_rate": self.win_rate,
            "matched_quantity": self.matched_quantity,
            "replenished": self.replenished,
            "rollbacks": self.rollbacks,
            "draws": self.draws,
            "tails": [
                {"tail": value, "length": length, "label": f"{value:0{length}d}"}
                for value, length in sorted(self.patterns.items(),
                                            key=lambda kv: (kv[1], kv[0]))
            ],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
