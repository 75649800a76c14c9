"""
Overdue Schemas

Server-computed payment standing of a member. The client never derives
due dates or day counts itself.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class OverdueType(str, Enum):
    WELFARE = "Welfare"
    EDUCATIONAL = "Educational"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value):
        # Unknown server categories are kept as "other"
        return cls.OTHER


class OverdueResolution(str, Enum):
    """What the member can do about one overdue record"""
    PAY_WELFARE = "pay_welfare"
    CONTACT_ADMIN = "contact_admin"
    NONE = "none"


class OverdueSummary(BaseModel):
    """
    Aggregate standing for one member.

    has_overdue == (overdue_count > 0), and restricted_access implies has_overdue.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    member_id: str = ""
    has_overdue: bool = False
    overdue_count: int = Field(default=0, ge=0)
    total_overdue_amount: Decimal = Field(default=Decimal("0"), ge=0)
    oldest_overdue_days: int = Field(default=0, ge=0)
    restricted_access: bool = False

    @model_validator(mode="after")
    def check_consistency(self) -> "OverdueSummary":
        if self.has_overdue != (self.overdue_count > 0):
            raise ValueError("has_overdue must match overdue_count > 0")
        if self.restricted_access and not self.has_overdue:
            raise ValueError("restricted_access requires has_overdue")
        return self

    @classmethod
    def unrestricted(cls, member_id: str = "") -> "OverdueSummary":
        """Summary used for roles that are exempt from overdue checks"""
        return cls(member_id=member_id)


class OverdueRecord(BaseModel):
    """One overdue obligation (detail row)"""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    overdue_type: OverdueType = OverdueType.OTHER
    due_amount: Decimal = Field(default=Decimal("0"), ge=0)
    due_date: Optional[datetime] = None
    overdue_since: Optional[datetime] = None
    days_overdue: int = Field(default=0, ge=0)
    status: str = ""
    reference_id: Optional[str] = None

    @field_validator("overdue_type", mode="before")
    @classmethod
    def coerce_type(cls, v):
        if v is None or v == "":
            return OverdueType.OTHER
        return v

    @property
    def resolution(self) -> OverdueResolution:
        if self.overdue_type is OverdueType.WELFARE:
            return OverdueResolution.PAY_WELFARE
        if self.overdue_type is OverdueType.EDUCATIONAL:
            return OverdueResolution.CONTACT_ADMIN
        return OverdueResolution.NONE
