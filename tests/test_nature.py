from __future__ import annotations

from moontide.nature import NatureEvalResult, NatureEventRule, evaluate_rules
from moontide.series import build_solar_series


def test_rules_produce_no_bands_or_markers_yet():
    series = build_solar_series(41.4353, -71.4616, 2025)
    rules = [
        NatureEventRule(id="herring-run", trigger="photoperiod", threshold=13.5, label="Herring run"),
        NatureEventRule(id="striper-fall", trigger="photoperiod", threshold=11.0, label="Stripers leave"),
    ]
    result = evaluate_rules(series, rules)
    assert isinstance(result, NatureEvalResult)
    assert result.bands == []
    assert result.markers == []


def test_empty_rule_list():
    series = build_solar_series(-33.8688, 151.2093, 2025)
    assert evaluate_rules(series, []) == NatureEvalResult(bands=[], markers=[])
