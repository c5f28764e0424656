"""
Tests for schema-validated model output parsing.
"""

import json

from pydantic import BaseModel

from deal_analysis.models.analysis import (
    ExpenseValidationOutput,
    FinancialAnalysis,
    MarketAnalysis,
    Recommendation,
    RevenueOptimization,
)
from deal_analysis.pipeline.parsing import (
    Parsed,
    ParsedList,
    Unparsed,
    parse_model_list,
    parse_model_output,
)


class _NamedThing(BaseModel):
    name: str


class TestParseModelOutput:
    def test_valid_object(self):
        outcome = parse_model_output(json.dumps({'score': 72, 'insights': 'ok'}), MarketAnalysis)

        assert isinstance(outcome, Parsed)
        assert outcome.value.score == 72
        assert outcome.value.insights == 'ok'

    def test_fenced_json(self):
        raw = '```json\n{"score": 61}\n```'
        outcome = parse_model_output(raw, MarketAnalysis)

        assert isinstance(outcome, Parsed)
        assert outcome.value.score == 61

    def test_prose_is_unparsed(self):
        raw = 'The market looks strong overall.'
        outcome = parse_model_output(raw, MarketAnalysis)

        assert isinstance(outcome, Unparsed)
        assert outcome.raw_text == raw
        assert 'not valid JSON' in outcome.reason

    def test_empty_is_unparsed(self):
        outcome = parse_model_output('   ', MarketAnalysis)
        assert isinstance(outcome, Unparsed)
        assert 'empty' in outcome.reason

    def test_array_is_unparsed(self):
        outcome = parse_model_output('[1, 2, 3]', MarketAnalysis)
        assert isinstance(outcome, Unparsed)
        assert 'JSON object' in outcome.reason

    def test_invalid_field_takes_default_and_keeps_the_rest(self):
        outcome = parse_model_output('{"score": "excellent", "demographic_score": 81}', MarketAnalysis)

        assert isinstance(outcome, Parsed)
        assert outcome.value.score == 50
        assert outcome.value.demographic_score == 81
        assert outcome.dropped == ('score',)

    def test_missing_required_field_is_unparsed(self):
        outcome = parse_model_output('{"other": 1}', _NamedThing)

        assert isinstance(outcome, Unparsed)
        assert 'Schema validation failed' in outcome.reason

    def test_object_valued_assessment_keeps_scores(self):
        raw = json.dumps({'score': 82, 'value_assessment': {'verdict': 'fair'}})
        outcome = parse_model_output(raw, FinancialAnalysis)

        assert isinstance(outcome, Parsed)
        assert outcome.value.score == 82
        assert json.loads(outcome.value.value_assessment) == {'verdict': 'fair'}
        assert outcome.dropped == ()

    def test_range_timeline_keeps_projection(self):
        raw = json.dumps({
            'current_revenue': 180000,
            'projected_revenue': 240000,
            'timeline_months': '6-12',
        })
        outcome = parse_model_output(raw, RevenueOptimization)

        assert isinstance(outcome, Parsed)
        assert outcome.value.projected_revenue == 240000
        assert outcome.value.timeline_months is None

    def test_numeric_timeline_string(self):
        outcome = parse_model_output('{"timeline_months": "18"}', RevenueOptimization)
        assert outcome.value.timeline_months == 18

    def test_worded_expense_verdict(self):
        outcome = parse_model_output('{"is_reasonable": "No", "confidence": 70}', ExpenseValidationOutput)

        assert outcome.value.is_reasonable is False
        assert outcome.value.confidence == 70

    def test_missing_fields_take_defaults(self):
        outcome = parse_model_output('{"insights": "thin data"}', MarketAnalysis)

        assert isinstance(outcome, Parsed)
        assert outcome.value.score == 50
        assert outcome.value.competition_score == 50

    def test_null_fields_take_defaults(self):
        outcome = parse_model_output('{"score": null, "demographic_score": 90}', MarketAnalysis)

        assert outcome.value.score == 50
        assert outcome.value.demographic_score == 90

    def test_scores_clamped_and_rounded(self):
        outcome = parse_model_output('{"score": 140, "competition_score": -3, "location_quality": "72.5"}', MarketAnalysis)

        assert outcome.value.score == 100
        assert outcome.value.competition_score == 0
        assert outcome.value.location_quality == 73


class TestParseModelList:
    def test_object_with_key(self):
        raw = json.dumps({'recommendations': [{'title': 'A', 'priority': 1}]})
        outcome = parse_model_list(raw, Recommendation, key='recommendations')

        assert isinstance(outcome, ParsedList)
        assert outcome.items[0].title == 'A'

    def test_bare_array(self):
        raw = json.dumps([{'title': 'A'}, {'title': 'B'}])
        outcome = parse_model_list(raw, Recommendation, key='recommendations')

        assert isinstance(outcome, ParsedList)
        assert [r.title for r in outcome.items] == ['A', 'B']

    def test_empty_list_is_unparsed(self):
        outcome = parse_model_list('{"recommendations": []}', Recommendation, key='recommendations')
        assert isinstance(outcome, Unparsed)

    def test_wrong_key_is_unparsed(self):
        outcome = parse_model_list('{"items": [{"title": "A"}]}', Recommendation, key='recommendations')
        assert isinstance(outcome, Unparsed)

    def test_non_object_item_is_skipped(self):
        raw = json.dumps([{'title': 'A'}, 'not an object'])
        outcome = parse_model_list(raw, Recommendation, key='recommendations')

        assert isinstance(outcome, ParsedList)
        assert [r.title for r in outcome.items] == ['A']
        assert outcome.skipped == 1

    def test_numeric_timeframe_keeps_whole_list(self):
        items = [{'title': f'Step {i}', 'priority': 2} for i in range(5)]
        items.append({'title': 'Upgrade dryers', 'timeframe': 6, 'category': 7})
        outcome = parse_model_list(json.dumps(items), Recommendation, key='recommendations')

        assert isinstance(outcome, ParsedList)
        assert len(outcome.items) == 6
        assert outcome.items[-1].timeframe == '6'
        assert outcome.items[-1].category == '7'

    def test_no_usable_item_is_unparsed(self):
        outcome = parse_model_list('[1, "two"]', Recommendation, key='recommendations')

        assert isinstance(outcome, Unparsed)
        assert 'No valid items' in outcome.reason


class TestRecommendationShape:
    def test_no_insights_key(self):
        assert 'insights' not in Recommendation(title='A').model_dump()
