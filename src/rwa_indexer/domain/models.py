"""Store-side views the processor needs: pure dataclasses."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DividendRef:
    id: int
    pda: str
    mint: str
    total_amount: int
    is_closed: bool


@dataclass(frozen=True)
class FreeFloatChange:
    requested: int   # free_float + delta before clamping
    free_float: int  # stored value after clamping

    @property
    def clamped(self) -> bool:
        return self.requested != self.free_float
