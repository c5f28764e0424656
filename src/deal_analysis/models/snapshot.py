"""
DealSnapshot: the normalized, immutable record every pipeline stage reads.

The raw request payload is loosely typed (camelCase keys from the web app,
numbers that may arrive as strings, optional sections that may be missing or
malformed). from_payload() never raises on malformed optional fields: bad
values degrade to None / empty collections, and every monetary field is
either a non-negative float or None.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..utils import to_money, to_number

# Keys consumed into typed fields; everything else lands in metadata
_DEAL_KEYS = frozenset({
    'askingPrice', 'grossIncomeAnnual', 'annualNet', 'facilitySizeSqft',
    'propertyAddress', 'lease', 'expenses', 'equipment', 'machineInventory',
})


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _count(value: Any) -> int | None:
    number = to_number(value)
    if number is None or number < 0:
        return None
    return int(number)


class LeaseTerms(BaseModel):
    """Lease terms for the premises (absent fields stay None)."""

    model_config = ConfigDict(frozen=True)

    monthly_rent: float | None = None
    annual_rent_increase_percent: float | None = None
    cam_cost_annual: float | None = None
    remaining_term_years: float | None = None
    renewal_options_count: int | None = None
    renewal_option_length_years: float | None = None
    lease_type: str | None = None
    lease_terms: str | None = None

    @property
    def annual_rent(self) -> float | None:
        if self.monthly_rent is None:
            return None
        return self.monthly_rent * 12

    @classmethod
    def from_payload(cls, data: Any) -> LeaseTerms | None:
        if not isinstance(data, dict):
            return None
        return cls(
            monthly_rent=to_money(data.get('monthlyRent')),
            annual_rent_increase_percent=to_money(data.get('annualRentIncreasePercent')),
            cam_cost_annual=to_money(data.get('camCostAnnual')),
            remaining_term_years=to_money(data.get('remainingLeaseTermYears')),
            renewal_options_count=_count(data.get('renewalOptionsCount')),
            renewal_option_length_years=to_money(data.get('renewalOptionLengthYears')),
            lease_type=_text(data.get('leaseType')),
            lease_terms=_text(data.get('leaseTerms')),
        )


class ExpenseLineItem(BaseModel):
    """One reported operating expense."""

    model_config = ConfigDict(frozen=True)

    expense_name: str
    amount_annual: float | None = None
    expense_type: str | None = None

    @classmethod
    def from_payload(cls, data: Any, index: int) -> ExpenseLineItem | None:
        if not isinstance(data, dict):
            return None
        return cls(
            expense_name=_text(data.get('expenseName')) or f'Expense {index + 1}',
            amount_annual=to_money(data.get('amountAnnual')),
            expense_type=_text(data.get('expenseType')),
        )


class Machine(BaseModel):
    """One line of the machine inventory."""

    model_config = ConfigDict(frozen=True)

    machine_type: str | None = None
    brand: str | None = None
    model: str | None = None
    quantity: int = 1
    age_years: float | None = None
    capacity_lbs: float | None = None
    vend_price_per_use: float | None = None
    condition_rating: float | None = None
    is_out_of_order: bool = False

    @classmethod
    def from_payload(cls, data: Any) -> Machine | None:
        if not isinstance(data, dict):
            return None
        quantity = _count(data.get('quantity'))
        return cls(
            machine_type=_text(data.get('machineType')),
            brand=_text(data.get('brand')),
            model=_text(data.get('model')),
            quantity=quantity if quantity is not None else 1,
            age_years=to_money(data.get('ageYears')),
            capacity_lbs=to_money(data.get('capacityLbs')),
            vend_price_per_use=to_money(data.get('vendPricePerUse')),
            condition_rating=to_money(data.get('conditionRating')),
            is_out_of_order=data.get('isOutOfOrder') is True,
        )

    def to_prompt_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class DealSnapshot(BaseModel):
    """
    Canonical view of one laundromat acquisition, built once per request.

    Derived metrics mirror the deal calculator used by the web app: NOI falls
    back to gross minus reported expenses when net income was not supplied.
    """

    model_config = ConfigDict(frozen=True)

    asking_price: float | None = None
    gross_income_annual: float | None = None
    annual_net: float | None = None
    facility_size_sqft: float | None = None
    property_address: str | None = None
    lease: LeaseTerms | None = None
    expenses: tuple[ExpenseLineItem, ...] = ()
    equipment: Any = None
    machines: tuple[Machine, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> DealSnapshot:
        """
        Build a snapshot from the request's dealData object.

        Args:
            data: Raw dealData dict (camelCase keys)

        Returns:
            Frozen DealSnapshot
        """
        raw_expenses = data.get('expenses')
        expenses: list[ExpenseLineItem] = []
        if isinstance(raw_expenses, list):
            for index, raw in enumerate(raw_expenses):
                item = ExpenseLineItem.from_payload(raw, index)
                if item is not None:
                    expenses.append(item)

        raw_machines = data.get('machineInventory')
        machines: list[Machine] = []
        if isinstance(raw_machines, list):
            for raw in raw_machines:
                machine = Machine.from_payload(raw)
                if machine is not None:
                    machines.append(machine)

        equipment = data.get('equipment')
        if not isinstance(equipment, (dict, list, str)):
            equipment = None

        return cls(
            asking_price=to_money(data.get('askingPrice')),
            gross_income_annual=to_money(data.get('grossIncomeAnnual')),
            annual_net=to_money(data.get('annualNet')),
            facility_size_sqft=to_money(data.get('facilitySizeSqft')),
            property_address=_text(data.get('propertyAddress')),
            lease=LeaseTerms.from_payload(data.get('lease')),
            expenses=tuple(expenses),
            equipment=equipment,
            machines=tuple(machines),
            metadata={k: v for k, v in data.items() if k not in _DEAL_KEYS},
        )

    # -------------------------------------------------------------------------
    # Derived metrics (None when inputs are missing)
    # -------------------------------------------------------------------------

    @property
    def total_operating_expenses(self) -> float | None:
        amounts = [e.amount_annual for e in self.expenses if e.amount_annual is not None]
        if not amounts:
            return None
        return sum(amounts)

    @property
    def noi(self) -> float | None:
        if self.annual_net is not None:
            return self.annual_net
        expenses = self.total_operating_expenses
        if self.gross_income_annual is None or expenses is None:
            return None
        return self.gross_income_annual - expenses

    @property
    def cap_rate_percent(self) -> float | None:
        noi = self.noi
        if noi is None or not self.asking_price:
            return None
        return noi / self.asking_price * 100

    @property
    def expense_ratio_percent(self) -> float | None:
        expenses = self.total_operating_expenses
        if expenses is None or not self.gross_income_annual:
            return None
        return expenses / self.gross_income_annual * 100

    @property
    def revenue_per_sqft(self) -> float | None:
        if self.gross_income_annual is None or not self.facility_size_sqft:
            return None
        return self.gross_income_annual / self.facility_size_sqft

    @property
    def machine_count(self) -> int:
        return sum(m.quantity for m in self.machines)

    @property
    def average_machine_age(self) -> float | None:
        ages = [(m.age_years, m.quantity) for m in self.machines if m.age_years is not None]
        units = sum(q for _, q in ages)
        if not units:
            return None
        return sum(age * q for age, q in ages) / units
