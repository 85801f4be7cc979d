"""
Tests for LLM response parsing: JSON extraction, repair and plan validation.
"""

import json

import pytest

from conftest import valid_plan_dict
from errors import AiProviderError, PlanValidationError
from llm.response_parser import JSONParseError, extract_first_json, extract_json, parse_plan


class TestExtractFirstJson:

    def test_fenced_block(self):
        assert extract_first_json('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_surrounding_prose(self):
        text = 'Berikut rencananya: {"a": {"b": [1, 2]}} semoga membantu {"c": 3}'
        assert extract_first_json(text) == '{"a": {"b": [1, 2]}}'

    def test_braces_inside_strings(self):
        text = 'x {"a": "x}y{", "b": "q\\"}"} z'
        assert extract_first_json(text) == '{"a": "x}y{", "b": "q\\"}"}'
        assert json.loads(extract_first_json(text))["a"] == "x}y{"

    def test_array_value(self):
        assert extract_first_json('hasil: [1, {"a": 2}] selesai') == '[1, {"a": 2}]'

    @pytest.mark.parametrize("text", ["", "tidak ada json", '{"a": 1'])
    def test_nothing_found(self, text):
        assert extract_first_json(text) is None


class TestExtractJson:

    def test_direct(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_repairs_python_literals_and_trailing_commas(self):
        assert extract_json("Jawaban: {'a': None, 'b': True,}") == {"a": None, "b": True}

    def test_raises_when_nothing_parses(self):
        with pytest.raises(JSONParseError):
            extract_json("maaf, saya tidak bisa membantu")

    def test_empty(self):
        with pytest.raises(JSONParseError):
            extract_json("   ")

    def test_skips_bracketed_prose_before_the_answer(self):
        plan = valid_plan_dict()
        text = "Berikut rencana [versi 1] untuk Anda:\n" + json.dumps(plan)

        assert extract_json(text) == plan

    def test_object_wins_over_earlier_array(self):
        assert extract_json('lihat [1] lalu {"a": 2}') == {"a": 2}

    def test_array_when_no_object(self):
        assert extract_json("hasil: [1, 2] saja") == [1, 2]


class TestParsePlan:

    def test_valid_plan(self, plan_json):
        plan = parse_plan(plan_json)

        assert plan.umkm_level == "kecil"
        assert len(plan.quick_wins) == 3
        assert len(plan.initiatives) == 3
        assert plan.risks == ["Harga bahan baku naik"]
        assert plan.assumptions is None

    def test_plan_inside_fences_with_prose(self, plan_json):
        plan = parse_plan(f"Tentu! Ini rencananya:\n```json\n{plan_json}\n```\nSemoga sukses.")
        assert len(plan.diagnosis) == 2

    def test_enum_values_are_normalised(self):
        data = valid_plan_dict()
        data["umkmLevel"] = "Kecil"
        data["quickWins"][0]["impact"] = "Tinggi "

        plan = parse_plan(json.dumps(data))

        assert plan.umkm_level == "kecil"
        assert plan.quick_wins[0].impact == "tinggi"

    def test_missing_diagnosis(self):
        data = valid_plan_dict()
        del data["diagnosis"]

        with pytest.raises(PlanValidationError):
            parse_plan(json.dumps(data))

    def test_empty_diagnosis(self):
        data = valid_plan_dict()
        data["diagnosis"] = []

        with pytest.raises(PlanValidationError):
            parse_plan(json.dumps(data))

    def test_bad_start_month(self):
        data = valid_plan_dict()
        data["initiatives"][0]["startMonth"] = "Juli 2024"

        with pytest.raises(PlanValidationError):
            parse_plan(json.dumps(data))

    def test_unknown_rating(self):
        data = valid_plan_dict()
        data["quickWins"][0]["effort"] = "mudah"

        with pytest.raises(PlanValidationError):
            parse_plan(json.dumps(data))

    def test_array_is_rejected(self):
        with pytest.raises(PlanValidationError):
            parse_plan("[1, 2, 3]")

    def test_too_few_quick_wins(self):
        with pytest.raises(PlanValidationError, match="Quick wins"):
            parse_plan(json.dumps(valid_plan_dict(n_quick_wins=2)))

    def test_too_few_initiatives(self):
        with pytest.raises(PlanValidationError, match="Inisiatif"):
            parse_plan(json.dumps(valid_plan_dict(n_initiatives=1)))

    def test_extra_items_are_truncated(self):
        plan = parse_plan(json.dumps(valid_plan_dict(n_quick_wins=7, n_initiatives=8)))

        assert len(plan.quick_wins) == 5
        assert len(plan.initiatives) == 6
        assert plan.quick_wins[-1].title == "Quick win 4"

    def test_custom_ranges(self):
        plan = parse_plan(
            json.dumps(valid_plan_dict(n_quick_wins=2, n_initiatives=2)),
            quick_wins_range=(1, 2),
            initiatives_range=(1, 1),
        )

        assert len(plan.quick_wins) == 2
        assert len(plan.initiatives) == 1

    def test_not_json(self):
        with pytest.raises(JSONParseError):
            parse_plan("tidak ada rencana")

    def test_errors_are_ai_provider_errors(self):
        assert issubclass(PlanValidationError, AiProviderError)
        assert issubclass(JSONParseError, AiProviderError)

    def test_placeholder_braces_before_plan(self):
        text = "Format {umkmLevel} sudah diisi.\n" + json.dumps(valid_plan_dict())

        plan = parse_plan(text)

        assert len(plan.quick_wins) == 3

    @pytest.mark.parametrize("quick_wins", [5, True, "banyak"])
    def test_non_list_quick_wins(self, quick_wins):
        data = {"umkmLevel": "mikro", "diagnosis": ["x"], "quickWins": quick_wins, "initiatives": []}

        with pytest.raises(PlanValidationError):
            parse_plan(json.dumps(data))
