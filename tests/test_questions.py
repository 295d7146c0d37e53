"""Tests for the question catalogue."""

import json

import pytest
from pydantic import ValidationError

from benchmark.questions import DEFAULT_QUESTIONS, BenchmarkQuestion, Difficulty, QuestionBank
from core.errors import ConfigError


class TestBenchmarkQuestion:
    def test_alias_and_field_name(self):
        by_alias = BenchmarkQuestion(id="x", text="Bonjour ?")
        by_name = BenchmarkQuestion(id="x", prompt_text="Bonjour ?")
        assert by_alias == by_name
        assert by_alias.category == "general"
        assert by_alias.difficulty == Difficulty.MEDIUM

    def test_empty_prompt_rejected(self):
        with pytest.raises(ValidationError):
            BenchmarkQuestion(id="x", text="   ")

    def test_immutable(self):
        question = BenchmarkQuestion(id="x", text="Bonjour ?")
        with pytest.raises(ValidationError):
            question.prompt_text = "Autre"

    def test_to_dict(self):
        question = BenchmarkQuestion(id="x", text="Bonjour ?", difficulty="hard", expected_type="list")
        assert question.to_dict() == {
            "id": "x",
            "text": "Bonjour ?",
            "category": "general",
            "difficulty": "hard",
            "expected_type": "list",
        }


class TestQuestionBank:
    def test_default_catalogue(self):
        bank = QuestionBank()
        assert len(bank) == len(DEFAULT_QUESTIONS) == 10
        assert "medical_1" in bank
        assert bank.categories() == ["basic", "medical", "general", "coding", "reasoning"]
        assert set(bank.difficulties()) == {"easy", "medium", "hard"}
        assert len(bank.by_category("medical")) == 3

    def test_lookup_is_idempotent(self):
        bank = QuestionBank()
        assert bank.get("basic_1") is bank.get("basic_1")
        assert bank.resolve(["basic_1", "coding_1"]) == bank.resolve(["basic_1", "coding_1"])

    def test_resolve_splits_unknown_ids(self):
        bank = QuestionBank()
        found, dropped = bank.resolve(["coding_1", "nope", "basic_1", "coding_1"])
        assert [q.id for q in found] == ["coding_1", "basic_1"]
        assert dropped == ["nope"]

    def test_duplicate_ids_rejected(self):
        question = BenchmarkQuestion(id="dup", text="Bonjour ?")
        with pytest.raises(ConfigError):
            QuestionBank([question, question])

    def test_describe(self, small_bank):
        catalogue = small_bank.describe()
        assert catalogue["total_questions"] == 2
        assert [q["id"] for q in catalogue["available_questions"]] == ["q1", "q2"]
        assert catalogue["categories"] == ["basic", "medical"]


class TestQuestionsFile:
    def test_loads_list_after_defaults(self, tmp_path):
        path = tmp_path / "questions.json"
        path.write_text(json.dumps([{"id": "custom_1", "text": "Qu'est-ce que l'ADN ?", "category": "medical"}]))
        bank = QuestionBank.from_file(str(path))
        assert len(bank) == 11
        assert bank.all()[-1].id == "custom_1"

    def test_loads_wrapped_without_defaults(self, tmp_path):
        path = tmp_path / "questions.json"
        path.write_text(json.dumps({"questions": [{"id": "custom_1", "text": "Bonjour ?"}]}))
        bank = QuestionBank.from_file(str(path), include_defaults=False)
        assert [q.id for q in bank.all()] == ["custom_1"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            QuestionBank.from_file(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "questions.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="not valid JSON"):
            QuestionBank.from_file(str(path))

    def test_invalid_question(self, tmp_path):
        path = tmp_path / "questions.json"
        path.write_text(json.dumps([{"id": "custom_1"}]))
        with pytest.raises(ConfigError, match="Invalid question"):
            QuestionBank.from_file(str(path))

    def test_clash_with_default_id(self, tmp_path):
        path = tmp_path / "questions.json"
        path.write_text(json.dumps([{"id": "basic_1", "text": "Encore ?"}]))
        with pytest.raises(ConfigError, match="Duplicate"):
            QuestionBank.from_file(str(path))
