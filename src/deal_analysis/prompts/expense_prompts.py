"""
Per-line-item expense validation prompt.

Benchmarks are matched to the expense by keyword (rent, utilities, labor);
when the category is unknown every available range is shown.
"""

from ..models.snapshot import DealSnapshot, ExpenseLineItem
from ..models.standards import StandardsContext, format_benchmarks
from ..utils import format_currency, format_number

EXPENSE_SYSTEM_PROMPT = (
    'You are an expert in laundromat operating expenses and cost validation. '
    'Respond with a single JSON object only, no prose outside the JSON.'
)

_CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    'rent_pct': ('rent', 'lease', 'cam', 'common area'),
    'utilities_pct': ('electric', 'power', 'gas', 'water', 'sewer', 'utilit', 'heating', 'fuel'),
    'labor_pct': ('payroll', 'wage', 'salar', 'labor', 'staff', 'attendant'),
}


def benchmark_for_expense(expense_name: str) -> str | None:
    """Map an expense name to the benchmark field that governs it."""
    name = expense_name.lower()
    for field_name, keywords in _CATEGORY_KEYWORDS.items():
        if any(keyword in name for keyword in keywords):
            return field_name
    return None


def build_expense_prompt(
    item: ExpenseLineItem,
    snapshot: DealSnapshot,
    standards: StandardsContext | None = None,
) -> list[dict[str, str]]:
    revenue = snapshot.gross_income_annual
    share = None
    if item.amount_annual is not None and revenue:
        share = item.amount_annual / revenue * 100

    category = benchmark_for_expense(item.expense_name)
    benchmarks = (
        format_benchmarks(standards, category)
        if category
        else format_benchmarks(standards, 'rent_pct', 'utilities_pct', 'labor_pct')
    )

    user = f"""Validate this laundromat expense:

Expense: {item.expense_name}
Amount: {format_currency(item.amount_annual)}
Share of Revenue: {format_number(share, '%', 1)}
Revenue: {format_currency(revenue)}
Facility Size: {format_number(snapshot.facility_size_sqft, ' sq ft')}
{benchmarks}
Is this expense reasonable? What's the typical range for this category?
Provide the percentage of revenue this should be and red flags to watch for.

Return JSON with these keys:
- "is_reasonable": boolean
- "confidence": integer 0-100
- "expected_percent_of_revenue": number
- "typical_range": object with "min" and "max" percent of revenue
- "red_flags": list of strings
- "notes": string explaining the verdict"""
    return [
        {'role': 'system', 'content': EXPENSE_SYSTEM_PROMPT},
        {'role': 'user', 'content': user},
    ]
