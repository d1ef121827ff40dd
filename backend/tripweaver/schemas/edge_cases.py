from typing import Literal

from pydantic import BaseModel, Field


class ConflictFlag(BaseModel):
    detected: bool = False
    detail: str = ""
    remediation_hints: list[str] = Field(default_factory=list)


class BudgetConflict(ConflictFlag):
    budget: float = 0.0
    estimated_cost: float = 0.0


class DurationConflict(ConflictFlag):
    kind: Literal["short", "long"] | None = None
    duration: int = 0


class ClimateConflict(ConflictFlag):
    preferred_climate: str = "any"
    destination_climate: str = ""
    alternatives: list[str] = Field(default_factory=list)


class EdgeCaseReport(BaseModel):
    budget_conflict: BudgetConflict = Field(default_factory=BudgetConflict)
    duration_conflict: DurationConflict = Field(default_factory=DurationConflict)
    climate_conflict: ClimateConflict = Field(default_factory=ClimateConflict)

    @property
    def needs_remediation(self) -> bool:
        return (
            self.budget_conflict.detected
            or self.duration_conflict.detected
            or self.climate_conflict.detected
        )
