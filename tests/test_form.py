"""
Tests for the form aggregator.

These tests verify:
    - One controller per question across all pages
    - Atomic submission (all answers or only errors)
    - Idempotent submit
    - Scenarios from single text and star rating questions
"""

import json

import pytest

from surveyloom.surveys.fields import RATING_MESSAGE, REQUIRED_MESSAGE, SELECT_AT_LEAST_ONE_MESSAGE
from surveyloom.surveys.form import FormAggregator, SubmissionResult

from tests.conftest import make_survey


OPTIONS = [{"value": "red", "label": "Red"}, {"value": "blue", "label": "Blue"}]


def two_page_survey():
    return make_survey(
        pages=[
            {
                "id": "p1",
                "title": "One",
                "questions": [
                    {"id": "name", "type": "text", "label": "Name", "required": True},
                    {"id": "bio", "type": "textarea", "label": "Bio", "required": False},
                    {"id": "colors", "type": "checkbox", "label": "Colors", "required": False, "options": OPTIONS},
                ],
            },
            {
                "id": "p2",
                "title": "Two",
                "questions": [
                    {"id": "fav", "type": "dropdown", "label": "Favourite", "required": False, "options": OPTIONS},
                    {"id": "energy", "type": "slider", "label": "Energy", "min": 1, "max": 10, "step": 1},
                    {"id": "stars", "type": "star_rating", "label": "Stars", "required": False},
                    {"id": "mystery", "type": "hologram", "label": "???", "required": True},
                ],
            },
        ]
    )


class TestFormAggregator:
    """Controller bookkeeping."""

    def test_one_controller_per_question(self):
        form = FormAggregator(two_page_survey())
        assert len(form) == 7
        assert [c.id for c in form.controllers] == ["name", "bio", "colors", "fav", "energy", "stars", "mystery"]
        assert "energy" in form
        assert "nope" not in form

    def test_unknown_id_raises(self):
        form = FormAggregator(two_page_survey())
        with pytest.raises(KeyError):
            form.set_value("nope", "x")

    def test_values_are_copies(self):
        form = FormAggregator(two_page_survey())
        form.set_value("colors", ["red"])
        values = form.values()
        values["colors"].append("blue")
        assert form.controller("colors").value == ["red"]

    def test_builds_for_out_of_range_numbers(self):
        """Should build and submit when a generated survey carries overflowing numbers."""
        form = FormAggregator(
            make_survey(
                {"id": "wide", "type": "slider", "label": "Wide", "min": -1e308, "max": 1e308},
                {"id": "far", "type": "slider", "label": "Far", "max": "1e999"},
                {"id": "stars", "type": "star_rating", "label": "Stars", "count": 1e308},
            )
        )
        result = form.submit()
        assert result.accepted
        assert result.answers == {"wide": 0, "far": 50, "stars": 0}
        assert form.controller("stars").question.count == 5

    def test_reset(self):
        form = FormAggregator(two_page_survey())
        form.set_value("name", "Ada")
        form.submit()
        form.reset()
        assert form.values()["name"] == ""
        assert form.errors() == {}


class TestSubmit:
    """Submission outcomes."""

    def test_rejects_with_only_error_map(self):
        form = FormAggregator(two_page_survey())
        result = form.submit()
        assert result.accepted is False
        assert result.errors == {"name": REQUIRED_MESSAGE}
        assert result.answers == {}

    def test_every_failing_field_reports(self):
        survey = make_survey(
            {"id": "a", "type": "text", "required": True},
            {"id": "b", "type": "checkbox", "required": True, "options": OPTIONS},
            {"id": "c", "type": "star_rating", "required": True},
        )
        result = FormAggregator(survey).submit()
        assert result.errors == {
            "a": REQUIRED_MESSAGE,
            "b": SELECT_AT_LEAST_ONE_MESSAGE,
            "c": RATING_MESSAGE,
        }

    def test_accepts_with_all_ids(self):
        """Answer keys equal the flattened question ids, whatever the page count."""
        survey = two_page_survey()
        form = FormAggregator(survey)
        form.set_value("name", "Ada")
        result = form.submit()
        assert result.accepted is True
        assert result.errors == {}
        assert set(result.answers) == set(survey.question_ids())
        assert result.answers == {
            "name": "Ada",
            "bio": "",
            "colors": [],
            "fav": None,
            "energy": 1,
            "stars": 0,
            "mystery": None,
        }

    def test_submit_is_idempotent(self):
        form = FormAggregator(two_page_survey())
        first = form.submit()
        second = form.submit()
        assert first == second
        form.set_value("name", "Ada")
        assert form.submit() == form.submit()

    def test_errors_track_controllers(self):
        form = FormAggregator(two_page_survey())
        form.submit()
        assert form.errors() == {"name": REQUIRED_MESSAGE}
        form.set_value("name", "x")
        assert form.errors() == {}

    def test_required_text_scenario(self):
        survey = make_survey({"id": "q1", "type": "text", "label": "Say hi", "required": True})
        form = FormAggregator(survey)
        form.set_value("q1", "")
        assert form.submit() == SubmissionResult(accepted=False, errors={"q1": "This field is required"})
        form.set_value("q1", "hello")
        assert form.submit() == SubmissionResult(accepted=True, answers={"q1": "hello"})

    def test_star_rating_scenario(self):
        survey = make_survey({"id": "q2", "type": "star_rating", "label": "Rate", "required": True, "count": 5})
        form = FormAggregator(survey)
        assert form.submit().errors == {"q2": "Please provide a rating"}
        assert form.set_value("q2", 3) is None
        assert form.controller("q2").value == 3
        result = form.submit()
        assert result.accepted
        assert result.answers == {"q2": 3}


class TestUpdateFromForm:
    """Applying posted browser forms."""

    def test_posted_form(self):
        form = FormAggregator(two_page_survey())
        form.update_from_form(
            {
                "name": ["Ada"],
                "colors": ["blue", "red"],
                "fav": ["blue"],
                "energy": ["42"],
                "stars": ["4"],
            }
        )
        assert form.values() == {
            "name": "Ada",
            "bio": "",
            "colors": ["red", "blue"],
            "fav": "blue",
            "energy": 10,
            "stars": 4,
            "mystery": None,
        }

    def test_missing_inputs_clear_values(self):
        form = FormAggregator(two_page_survey())
        form.set_value("colors", ["red"])
        form.set_value("stars", 2)
        form.update_from_form({"name": ["Ada"]})
        assert form.controller("colors").value == []
        assert form.controller("stars").value == 0

    def test_slider_keeps_value_when_not_posted(self):
        form = FormAggregator(two_page_survey())
        form.set_value("energy", 6)
        form.update_from_form({})
        assert form.controller("energy").value == 6


class TestSubmissionResult:
    def test_to_json(self):
        result = SubmissionResult(accepted=True, answers={"q": "héllo", "n": 3})
        assert json.loads(result.to_json()) == {"q": "héllo", "n": 3}
        assert "héllo" in result.to_json()
