"""
Commission schedule generation.

Turns a closed deal into one commission draft per contract year. The reseller
terms used here are a frozen snapshot taken at closure, so later changes to
the reseller never alter a generated schedule. All money values are Decimal.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

from reseller_portal.core.exceptions import InvalidContractTerms
from reseller_portal.models.commission import CommissionStatus

ONE_OFF_PERIOD = "One-time"


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidContractTerms(f"Not a valid amount: {value!r}")


@dataclass(frozen=True)
class ResellerSnapshot:
    """Reseller commission terms at the moment a deal is closed."""

    reseller_id: str
    commission_rate: Decimal
    commission_years: int
    is_one_off_payment: bool
    is_trusted: bool
    currency: str

    @classmethod
    def from_user(cls, user) -> "ResellerSnapshot":
        return cls(
            reseller_id=user.id,
            commission_rate=to_decimal(user.commission_rate),
            commission_years=int(user.commission_years or 1),
            is_one_off_payment=bool(user.is_one_off_payment),
            is_trusted=bool(user.is_trusted),
            currency=user.currency,
        )


@dataclass
class CommissionDraft:
    """A commission row that has not been persisted yet."""

    reseller_id: str
    customer_id: str
    amount: Decimal
    year_number: int
    period: str
    description: str
    contract_value: Decimal
    commission_rate: Decimal
    is_one_off_payment: bool
    currency: str
    requested_at: datetime
    status: CommissionStatus = CommissionStatus.PENDING
    approved_at: Optional[datetime] = None
    approved_by_id: Optional[str] = None
    auto_approved: bool = False
    auto_approval_rule_id: Optional[str] = None

    def to_row_kwargs(self) -> dict:
        return {
            "reseller_id": self.reseller_id,
            "customer_id": self.customer_id,
            "amount": self.amount,
            "year_number": self.year_number,
            "period": self.period,
            "description": self.description,
            "status": self.status,
            "contract_value": self.contract_value,
            "commission_rate": self.commission_rate,
            "is_one_off_payment": self.is_one_off_payment,
            "currency": self.currency,
            "requested_at": self.requested_at,
            "approved_at": self.approved_at,
            "approved_by_id": self.approved_by_id,
            "auto_approved": self.auto_approved,
            "auto_approval_rule_id": self.auto_approval_rule_id,
        }


def validate_contract_terms(contract_value, contract_duration):
    """Return (value, duration) normalized, or raise InvalidContractTerms."""
    value = to_decimal(contract_value)
    if not value.is_finite() or value <= 0:
        raise InvalidContractTerms(
            "Contract value must be greater than 0",
            details={"contract_value": str(contract_value)},
        )

    if isinstance(contract_duration, bool) or not isinstance(contract_duration, int):
        raise InvalidContractTerms(
            "Contract duration must be a whole number of years",
            details={"contract_duration": contract_duration},
        )
    if contract_duration < 1:
        raise InvalidContractTerms(
            "Contract duration must be at least 1 year",
            details={"contract_duration": contract_duration},
        )

    return value, contract_duration


def yearly_commission_amount(contract_value: Decimal, commission_rate: Decimal) -> Decimal:
    """Full-rate commission earned for one contract year (not amortized)."""
    return quantize_money(contract_value * commission_rate / Decimal("100"))


def generate_schedule(
    customer,
    contract_value,
    contract_duration: int,
    reseller: ResellerSnapshot,
    now: Optional[datetime] = None,
) -> List[CommissionDraft]:
    """
    Build the commission drafts for a closed deal.

    Every contract year earns contract_value * rate / 100. In one-off mode
    the whole schedule collapses into a single "One-time" draft carrying
    the total.
    """
    value, duration = validate_contract_terms(contract_value, contract_duration)
    now = now or datetime.utcnow()
    per_year = yearly_commission_amount(value, reseller.commission_rate)

    common = dict(
        reseller_id=reseller.reseller_id,
        customer_id=customer.id,
        contract_value=value,
        commission_rate=reseller.commission_rate,
        is_one_off_payment=reseller.is_one_off_payment,
        currency=reseller.currency,
        requested_at=now,
    )

    if reseller.is_one_off_payment:
        return [
            CommissionDraft(
                amount=quantize_money(per_year * duration),
                year_number=1,
                period=ONE_OFF_PERIOD,
                description=f"One-off commission (total) for {customer.company_name}",
                **common,
            )
        ]

    return [
        CommissionDraft(
            amount=per_year,
            year_number=year,
            period=f"Year {year}",
            description=f"Commission Year {year}/{duration} for {customer.company_name}",
            **common,
        )
        for year in range(1, duration + 1)
    ]
