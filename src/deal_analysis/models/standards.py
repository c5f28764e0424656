"""
StandardsContext: optional industry benchmark ranges keyed by location.

Two lookup payload shapes are understood:
- flat:   {"benchmarks": {"rent_pct": {"min": 15, "max": 25}, ...}}
- legacy: {"industryStandards": {"valuation": {"capRateRange": {...}}, ...}}

Prompts take slices of the context via format_for_prompt(); an absent
context (None) simply omits the benchmark block.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..utils import to_number

BENCHMARK_FIELDS: tuple[str, ...] = (
    'rent_pct',
    'utilities_pct',
    'labor_pct',
    'cap_rate',
    'noi_multiple',
    'ancillary_revenue_share',
)

_LABELS = {
    'rent_pct': 'Rent (% of revenue)',
    'utilities_pct': 'Utilities (% of revenue)',
    'labor_pct': 'Labor (% of revenue)',
    'cap_rate': 'Cap rate (%)',
    'noi_multiple': 'Price / NOI multiple (x)',
    'ancillary_revenue_share': 'Ancillary revenue share (% of revenue)',
}

# camelCase aliases accepted in flat payloads
_ALIASES = {
    'rent_pct': ('rent_pct', 'rentPct', 'rentPercent'),
    'utilities_pct': ('utilities_pct', 'utilitiesPct', 'utilitiesPercent'),
    'labor_pct': ('labor_pct', 'laborPct', 'laborPercent', 'payrollPercent'),
    'cap_rate': ('cap_rate', 'capRate', 'capRateRange'),
    'noi_multiple': ('noi_multiple', 'noiMultiple', 'multipleRange'),
    'ancillary_revenue_share': (
        'ancillary_revenue_share', 'ancillaryRevenueShare', 'ancillaryShare',
    ),
}

_RANGE_TEXT = re.compile(r'^\s*([\d.]+)\s*-\s*([\d.]+)\s*%?\s*$')


class BenchmarkRange(BaseModel):
    """Inclusive min/max range for one benchmark."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    @classmethod
    def coerce(cls, value: Any) -> BenchmarkRange | None:
        """Build from {'min','max'} dicts or '6-12%' strings; None if unusable."""
        low = high = None
        if isinstance(value, dict):
            low = to_number(value.get('min'))
            high = to_number(value.get('max'))
        elif isinstance(value, str):
            match = _RANGE_TEXT.match(value)
            if match:
                low, high = to_number(match.group(1)), to_number(match.group(2))
        if low is None or high is None:
            return None
        if low > high:
            low, high = high, low
        return cls(min=low, max=high)

    def describe(self) -> str:
        return f'{self.min:g} - {self.max:g}'


class StandardsContext(BaseModel):
    """Benchmark ranges for one location."""

    model_config = ConfigDict(frozen=True)

    zip_code: str | None = None
    source: str | None = None
    rent_pct: BenchmarkRange | None = None
    utilities_pct: BenchmarkRange | None = None
    labor_pct: BenchmarkRange | None = None
    cap_rate: BenchmarkRange | None = None
    noi_multiple: BenchmarkRange | None = None
    ancillary_revenue_share: BenchmarkRange | None = None

    @classmethod
    def from_lookup(cls, payload: Any, zip_code: str | None = None) -> StandardsContext | None:
        """
        Normalize a lookup response into a context.

        Returns:
            StandardsContext, or None when the payload carries no benchmark
        """
        if not isinstance(payload, dict):
            return None

        ranges: dict[str, BenchmarkRange] = {}

        flat = payload.get('benchmarks')
        if isinstance(flat, dict):
            for name, aliases in _ALIASES.items():
                for alias in aliases:
                    found = BenchmarkRange.coerce(flat.get(alias))
                    if found is not None:
                        ranges[name] = found
                        break

        legacy = payload.get('industryStandards')
        if isinstance(legacy, dict):
            for name, found in _from_industry_standards(legacy).items():
                ranges.setdefault(name, found)

        if not ranges:
            return None

        source = payload.get('source')
        return cls(
            zip_code=zip_code or _zip_from_payload(payload),
            source=source if isinstance(source, str) else None,
            **ranges,
        )

    @property
    def available(self) -> tuple[str, ...]:
        return tuple(name for name in BENCHMARK_FIELDS if getattr(self, name) is not None)

    def format_for_prompt(self, *names: str) -> str:
        """
        Render the requested benchmarks as prompt lines.

        Args:
            names: Benchmark field names; all available ones when empty

        Returns:
            Multi-line string, empty when none of the requested ranges exist
        """
        lines = []
        for name in names or BENCHMARK_FIELDS:
            value = getattr(self, name, None)
            if isinstance(value, BenchmarkRange):
                lines.append(f'- {_LABELS[name]}: {value.describe()}')
        return '\n'.join(lines)


def format_benchmarks(context: StandardsContext | None, *names: str) -> str:
    """Benchmark block for a prompt; empty string when no context is available."""
    if context is None:
        return ''
    lines = context.format_for_prompt(*names)
    if not lines:
        return ''
    location = f' for ZIP {context.zip_code}' if context.zip_code else ''
    return f'\nIndustry benchmarks{location}:\n{lines}\n'


def _zip_from_payload(payload: dict[str, Any]) -> str | None:
    value = payload.get('zipCode') or payload.get('zip_code')
    return str(value) if value else None


def _from_industry_standards(doc: dict[str, Any]) -> dict[str, BenchmarkRange]:
    """Pull ranges out of the legacy industry-standards document."""
    found: dict[str, BenchmarkRange] = {}

    valuation = doc.get('valuation')
    if isinstance(valuation, dict):
        cap = BenchmarkRange.coerce(valuation.get('capRateRange'))
        if cap is not None:
            found['cap_rate'] = cap
        multiple = BenchmarkRange.coerce(valuation.get('multipleRange'))
        if multiple is not None:
            found['noi_multiple'] = multiple

    expenses = doc.get('expenses')
    if isinstance(expenses, dict):
        for name, key in (('rent_pct', 'rent'), ('utilities_pct', 'utilities'), ('labor_pct', 'labor')):
            section = expenses.get(key)
            if isinstance(section, dict):
                pct = BenchmarkRange.coerce(section.get('percentOfRevenueRange'))
                if pct is not None:
                    found[name] = pct

    income = doc.get('income')
    if isinstance(income, dict):
        share = BenchmarkRange.coerce(income.get('ancillaryShareRange'))
        if share is not None:
            found['ancillary_revenue_share'] = share

    return found
