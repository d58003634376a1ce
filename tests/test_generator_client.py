"""
Tests for the Gemini generation client.

Requests are answered by an httpx.MockTransport, so no network is used.
"""

import asyncio
import json

import httpx
import pytest

from surveyloom.errors import GenerationError
from surveyloom.generator_client import SURVEY_RESPONSE_SCHEMA, GeneratorClient, extract_text


SURVEY = {
    "title": "Snack Time 🍿",
    "description": "Quick snack poll",
    "config": {
        "theme": {"primaryColor": "#e91e63", "backgroundColor": "#ffffff"},
        "pages": [
            {
                "id": "p1",
                "title": "Snacks",
                "questions": [
                    {"id": "snack", "type": "dropdown", "label": "Pick one", "required": True,
                     "options": [{"value": "chips", "label": "Chips"}, {"value": "nuts", "label": "Nuts"}]},
                    {"id": "hunger", "type": "slider", "label": "Hunger", "required": False, "min": 0, "max": 10, "step": 1},
                ],
            }
        ],
    },
}


def gemini_response(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def client_for(handler, api_key="secret"):
    return GeneratorClient(
        "https://gemini.test/v1beta/",
        api_key=api_key,
        model="gemini-test",
        transport=httpx.MockTransport(handler),
    )


class TestGenerate:
    """Successful and failing generations."""

    def test_parses_generated_survey(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_response(json.dumps(SURVEY)))

        survey = asyncio.run(client_for(handler).generate())
        assert survey.title == "Snack Time 🍿"
        assert survey.question_ids() == ["snack", "hunger"]
        assert seen["url"] == "https://gemini.test/v1beta/models/gemini-test:generateContent"
        assert seen["key"] == "secret"
        config = seen["body"]["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"] == SURVEY_RESPONSE_SCHEMA
        assert seen["body"]["contents"][0]["parts"][0]["text"]

    def test_http_error(self):
        def handler(request):
            return httpx.Response(503, json={"error": "overloaded"})

        with pytest.raises(GenerationError):
            asyncio.run(client_for(handler).generate())

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        with pytest.raises(GenerationError):
            asyncio.run(client_for(handler).generate())

    def test_response_not_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(GenerationError):
            asyncio.run(client_for(handler).generate())

    def test_candidate_text_not_json(self):
        def handler(request):
            return httpx.Response(200, json=gemini_response("Here is your survey!"))

        with pytest.raises(GenerationError, match="not valid JSON"):
            asyncio.run(client_for(handler).generate())

    def test_content_violates_schema(self):
        broken = dict(SURVEY, config={"pages": []})

        def handler(request):
            return httpx.Response(200, json=gemini_response(json.dumps(broken)))

        with pytest.raises(GenerationError, match="does not match"):
            asyncio.run(client_for(handler).generate())

    def test_unknown_question_type_is_tolerated(self):
        odd = json.loads(json.dumps(SURVEY))
        odd["config"]["pages"][0]["questions"].append({"id": "x", "type": "matrix", "label": "Grid", "required": True})

        def handler(request):
            return httpx.Response(200, json=gemini_response(json.dumps(odd)))

        survey = asyncio.run(client_for(handler).generate())
        assert survey.question_ids()[-1] == "x"

    def test_missing_api_key(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(GenerationError, match="GEMINI_API_KEY"):
            asyncio.run(client_for(handler, api_key="").generate())


class TestExtractText:
    def test_joins_parts(self):
        data = {"candidates": [{"content": {"parts": [{"text": '{"a"'}, {"text": ": 1}"}]}}]}
        assert extract_text(data) == '{"a": 1}'

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"candidates": []},
            {"candidates": [{"content": {}}]},
            {"candidates": [{"content": {"parts": [{"text": "  "}]}}]},
            None,
        ],
    )
    def test_missing_text(self, data):
        with pytest.raises(GenerationError):
            extract_text(data)
