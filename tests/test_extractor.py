import asyncio
import json
from datetime import date
from unittest.mock import AsyncMock, patch

import ollama
import pytest

from incident_scribe.agents import get_extractor, normalize_proposal, MockExtractor
from incident_scribe.agents.ollama_extractor import OllamaExtractor
from incident_scribe.core.errors import ExtractionError

TODAY = date(2024, 3, 15)


class TestNormalizeProposal:

    def test_aliases_are_mapped(self):
        proposal = normalize_proposal({"incidentType": "Elopement", "functionOfBehavior": ["Escape/Avoidance"]}, today=TODAY)

        assert proposal == {"incident_type": "Elopement", "function_of_behavior": ["Escape/Avoidance"]}

    def test_unknown_keys_and_nulls_dropped(self):
        proposal = normalize_proposal({"summary": "x", "behavior": None, "mood": "calm", "status": "signed"}, today=TODAY)

        assert proposal == {"summary": "x"}

    @pytest.mark.parametrize("raw,expected", [
        ("today", "2024-03-15"),
        ("Just now", "2024-03-15"),
        ("yesterday", "2024-03-14"),
        ("2024-02-29", "2024-02-29"),
        ("2024-02-29T10:00:00", "2024-02-29"),
    ])
    def test_dates(self, raw, expected):
        assert normalize_proposal({"date": raw}, today=TODAY) == {"date": expected}

    @pytest.mark.parametrize("raw", ["last Tuesday", "", 20240315])
    def test_unparseable_dates_dropped(self, raw):
        assert normalize_proposal({"date": raw}, today=TODAY) == {}

    @pytest.mark.parametrize("raw,expected", [
        ("9:05", "09:05"),
        ("14:30", "14:30"),
        (" 07:00 ", "07:00"),
    ])
    def test_times(self, raw, expected):
        assert normalize_proposal({"time": raw}) == {"time": expected}

    @pytest.mark.parametrize("raw", ["25:00", "10:75", "noon", 930])
    def test_invalid_times_dropped(self, raw):
        assert normalize_proposal({"time": raw}) == {}

    def test_single_tag_wrapped(self):
        assert normalize_proposal({"functionOfBehavior": "Communication"}) == {"function_of_behavior": ["Communication"]}

    def test_other_malformed_values_passed_through(self):
        assert normalize_proposal({"summary": 42}) == {"summary": 42}

    @pytest.mark.parametrize("raw", [None, [], "text"])
    def test_non_mapping(self, raw):
        assert normalize_proposal(raw) == {}


class TestMockExtractor:

    NARRATIVE = (
        "Jordan yelled at a classmate during math today at 10:30 am. "
        "Before that he was asked to finish a worksheet. "
        "He was then sent to the office."
    )

    def test_extracts_fields(self):
        proposal = asyncio.run(MockExtractor().extract(self.NARRATIVE))

        assert proposal["summary"] == "Jordan yelled at a classmate during math today at 10:30 am."
        assert proposal["behavior"] == "Jordan yelled at a classmate during math today at 10:30 am."
        assert proposal["consequence"] == "He was then sent to the office."
        assert proposal["incident_type"] == "Verbal Outburst"
        assert proposal["function_of_behavior"] == ["Escape/Avoidance"]
        assert proposal["date"] == date.today().isoformat()
        assert proposal["time"] == "10:30"

    def test_pm_time(self):
        proposal = asyncio.run(MockExtractor().extract("She threw a book at 2 pm."))

        assert proposal["time"] == "14:00"
        assert proposal["incident_type"] == "Property Destruction"

    def test_self_injury_checked_before_aggression(self):
        proposal = asyncio.run(MockExtractor().extract("He hit himself when the noise got loud."))

        assert proposal["incident_type"] == "Self-Injury"
        assert "Sensory Stimulation" in proposal["function_of_behavior"]

    def test_empty_narrative(self):
        assert asyncio.run(MockExtractor().extract("   ")) == {}

    def test_status(self):
        assert MockExtractor().get_status() == {"extractor_type": "MockExtractor", "model_name": "mock-extractor"}


class TestOllamaExtractor:

    @pytest.fixture
    def extractor(self):
        return OllamaExtractor(model_name="llama3.1:8b", host="http://localhost:11434")

    def test_parses_json_reply(self, extractor):
        reply = {"summary": "Yelled", "incidentType": "Verbal Outburst", "date": "today", "time": None}
        extractor.client.chat = AsyncMock(return_value={"message": {"content": json.dumps(reply)}})

        proposal = asyncio.run(extractor.extract("He yelled."))

        assert proposal == {"summary": "Yelled", "incident_type": "Verbal Outburst", "date": date.today().isoformat()}
        kwargs = extractor.client.chat.call_args.kwargs
        assert kwargs["model"] == "llama3.1:8b"
        assert kwargs["format"] == "json"
        assert "He yelled." in kwargs["messages"][-1]["content"]

    def test_non_json_reply_is_no_information(self, extractor):
        extractor.client.chat = AsyncMock(return_value={"message": {"content": "I cannot help with that"}})

        assert asyncio.run(extractor.extract("He yelled.")) == {}

    def test_model_error(self, extractor):
        extractor.client.chat = AsyncMock(side_effect=ollama.ResponseError("model not found"))

        with pytest.raises(ExtractionError, match="model error"):
            asyncio.run(extractor.extract("He yelled."))

    def test_connection_error(self, extractor):
        extractor.client.chat = AsyncMock(side_effect=ConnectionError("refused"))

        with pytest.raises(ExtractionError, match="unavailable"):
            asyncio.run(extractor.extract("He yelled."))

    def test_prompt_lists_catalogues(self, extractor):
        system = extractor._build_messages("x")[0]["content"]

        assert "Physical Aggression" in system
        assert "Escape/Avoidance" in system


class TestGetExtractor:

    def test_mock_by_default(self):
        assert isinstance(get_extractor(), MockExtractor)

    def test_ollama_provider(self):
        with patch("incident_scribe.core.config.get_extractor_provider", return_value="ollama"):
            assert isinstance(get_extractor(), OllamaExtractor)
