"""
Recommendation synthesis prompt.

Consumes the headline stage outputs (by default market, financial and risk)
plus the deal's headline numbers.
"""

from ..models.results import StageResult
from ..models.snapshot import DealSnapshot
from ..utils import format_currency

RECOMMENDATION_SYSTEM_PROMPT = (
    'You are a strategic advisor for laundromat investments. '
    'Provide specific, actionable recommendations. '
    'Respond with a single JSON object only, no prose outside the JSON.'
)


def _stage_line(name: str, result: StageResult) -> str:
    output = result.output
    if name == 'market':
        return f'- Market Score: {output.score}/100'
    if name == 'financial':
        return (
            f'- Financial Score: {output.score}/100 '
            f'(value assessment: {output.value_assessment})'
        )
    if name == 'risk':
        return f'- Risk Score: {output.overall_risk}/100 (higher = riskier)'
    if name == 'revenue':
        return (
            f'- Revenue Upside: {format_currency(output.current_revenue)} -> '
            f'{format_currency(output.projected_revenue)}'
        )
    return f'- {name.title()}: {result.status}'


def build_recommendation_prompt(
    snapshot: DealSnapshot,
    analyses: dict[str, StageResult],
) -> list[dict[str, str]]:
    """
    Build the synthesis prompt.

    Args:
        snapshot: The deal snapshot
        analyses: Stage results keyed by stage name, in prompt order
    """
    results = '\n'.join(_stage_line(name, result) for name, result in analyses.items())

    user = f"""Based on this comprehensive analysis, generate actionable recommendations:

Deal Summary:
- Price: {format_currency(snapshot.asking_price)}
- Revenue: {format_currency(snapshot.gross_income_annual)}
- Address: {snapshot.property_address or 'N/A'}

Analysis Results:
{results}

Generate 5-10 prioritized recommendations covering:
1. Negotiation strategies
2. Financing optimization
3. Operational improvements
4. Risk mitigation
5. Exit planning

Return JSON of the form {{"recommendations": [...]}} where each item has:
- "category": one of "negotiation", "financing", "operation", "risk", "exit"
- "priority": integer 1-5 (1 = most urgent)
- "title": short string
- "description": string
- "impact_score": integer 0-100
- "implementation_difficulty": integer 1-5
- "estimated_benefit": dollar amount as a number, or null
- "timeframe": string"""
    return [
        {'role': 'system', 'content': RECOMMENDATION_SYSTEM_PROMPT},
        {'role': 'user', 'content': user},
    ]
