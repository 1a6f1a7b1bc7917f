import pytest

from incident_scribe.core.merge import merge, is_meaningful
from incident_scribe.core.schema import Record, EXTRACTABLE_FIELDS


@pytest.fixture
def live():
    return Record(
        summary="Student left the room",
        antecedent="typed by hand",
        behavior="",
        incident_type="Verbal Outburst",
        function_of_behavior=["Escape/Avoidance"],
    )


class TestLockPrecedence:

    @pytest.mark.parametrize("field", EXTRACTABLE_FIELDS)
    def test_locked_field_keeps_live_value(self, live, field):
        proposed = {
            "summary": "new summary",
            "antecedent": "new antecedent",
            "behavior": "new behavior",
            "consequence": "new consequence",
            "incident_type": "Elopement",
            "function_of_behavior": ["Attention Seeking"],
            "date": "2024-03-01",
            "time": "10:30",
        }
        merged, changed = merge(live, proposed, {field})

        assert merged.get(field) == live.get(field)
        assert field not in changed

    def test_lock_on_antecedent_while_behavior_fills_in(self):
        live = Record(antecedent="the operator's words", behavior="")
        merged, changed = merge(live, {"antecedent": "X", "behavior": "Y"}, {"antecedent"})

        assert merged.antecedent == "the operator's words"
        assert merged.behavior == "Y"
        assert changed == frozenset({"behavior"})


class TestAdoption:

    def test_meaningful_differing_values_are_adopted(self, live):
        proposed = {"behavior": "Threw a chair", "consequence": "Sent to office", "time": "10:30"}
        merged, changed = merge(live, proposed, set())

        for field, value in proposed.items():
            assert merged.get(field) == value
        assert changed == frozenset(proposed)

    def test_identical_value_is_not_reported(self, live):
        merged, changed = merge(live, {"summary": live.summary}, set())

        assert merged == live
        assert changed == frozenset()

    def test_value_adopted_untrimmed(self):
        merged, changed = merge(Record(), {"summary": "  padded  "}, set())

        assert merged.summary == "  padded  "
        assert changed == frozenset({"summary"})

    def test_sequential_deliveries_last_wins(self):
        live = Record()
        live, _ = merge(live, {"behavior": "A"}, set())
        live, changed = merge(live, {"behavior": "B"}, set())

        assert live.behavior == "B"
        assert changed == frozenset({"behavior"})

    def test_same_proposal_twice_changes_nothing_second_time(self, live):
        proposed = {"behavior": "Yelled", "function_of_behavior": ["Attention Seeking"]}
        once, _ = merge(live, proposed, set())
        twice, changed = merge(once, proposed, set())

        assert twice == once
        assert changed == frozenset()

    def test_record_proposal_accepted(self, live):
        merged, changed = merge(live, Record(behavior="Kicked a desk"), set())

        assert merged.behavior == "Kicked a desk"
        assert changed == frozenset({"behavior"})

    def test_non_extractable_fields_are_ignored(self, live):
        merged, changed = merge(live, {"status": "signed", "location": "Gym", "signature": "x"}, set())

        assert merged == live
        assert changed == frozenset()


class TestNoRegression:

    @pytest.mark.parametrize("blank", ["", "   ", "\n\t"])
    def test_blank_text_never_overwrites(self, live, blank):
        merged, changed = merge(live, {"summary": blank, "antecedent": blank}, set())

        assert merged.summary == live.summary
        assert merged.antecedent == live.antecedent
        assert changed == frozenset()

    def test_empty_list_never_overwrites(self, live):
        merged, changed = merge(live, {"function_of_behavior": []}, set())

        assert merged.function_of_behavior == ["Escape/Avoidance"]
        assert changed == frozenset()

    def test_fallback_incident_type_never_overwrites(self, live):
        merged, changed = merge(live, {"incident_type": "Other"}, set())

        assert merged.incident_type == "Verbal Outburst"
        assert changed == frozenset()

    def test_fallback_incident_type_not_adopted_into_empty_field(self):
        merged, changed = merge(Record(), {"incident_type": "Other"}, set())

        assert merged.incident_type == ""
        assert changed == frozenset()

    def test_absent_fields_keep_live(self, live):
        merged, changed = merge(live, {}, set())

        assert merged == live
        assert changed == frozenset()


class TestMalformedProposal:

    @pytest.mark.parametrize("proposed", [None, [], "summary", 42])
    def test_non_mapping_proposal_is_no_change(self, live, proposed):
        merged, changed = merge(live, proposed, set())

        assert merged == live
        assert changed == frozenset()

    @pytest.mark.parametrize("field,value", [
        ("summary", 42),
        ("behavior", ["a", "b"]),
        ("function_of_behavior", "Escape/Avoidance"),
        ("function_of_behavior", ["Attention Seeking", ""]),
        ("function_of_behavior", [1, 2]),
        ("incident_type", {"name": "Elopement"}),
    ])
    def test_wrong_shape_is_treated_as_absent(self, live, field, value):
        merged, changed = merge(live, {field: value}, set())

        assert merged.get(field) == live.get(field)
        assert changed == frozenset()

    def test_malformed_field_does_not_block_others(self, live):
        merged, changed = merge(live, {"summary": 42, "behavior": "Hit a peer"}, set())

        assert merged.summary == live.summary
        assert merged.behavior == "Hit a peer"
        assert changed == frozenset({"behavior"})


class TestPurity:

    def test_inputs_are_not_mutated(self, live):
        live_before = live.to_dict()
        proposed = {"behavior": "Yelled", "function_of_behavior": ["Attention Seeking"]}
        proposed_before = {"behavior": "Yelled", "function_of_behavior": ["Attention Seeking"]}
        locks = {"summary"}

        merged, _ = merge(live, proposed, locks)
        merged.function_of_behavior.append("Communication")

        assert live.to_dict() == live_before
        assert proposed == proposed_before
        assert locks == {"summary"}

    def test_is_meaningful(self):
        assert is_meaningful("summary", "x")
        assert not is_meaningful("summary", " ")
        assert not is_meaningful("incident_type", "Other")
        assert is_meaningful("function_of_behavior", ["Communication"])
        assert not is_meaningful("status", "signed")
