"""
Text-generation collaborator tests.

The Gemini client is exercised against httpx.MockTransport, so no request
leaves the process.
"""

import json

import httpx
import pytest

from mindmap_canvas.errors import CollaboratorFailure
from mindmap_canvas.generation import (
    GENERIC_LABELS,
    GeminiGenerator,
    OutlineNode,
    StaticGenerator,
    clean_labels,
    extract_json_block,
    fallback_labels,
    parse_label_list,
)


def gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_generator(handler, **kwargs):
    return GeminiGenerator("test-key", transport=httpx.MockTransport(handler), **kwargs)


class TestLabelCleaning:

    def test_strips_markup(self):
        raw = ["1. Basics", "- OOP", "**Libraries**", "`asyncio`", "\"Typing\"", "\u200bTesting", "  ", None, 7]
        assert clean_labels(raw) == ["Basics", "OOP", "Libraries", "asyncio", "Typing", "Testing"]

    def test_parse_comma_list(self):
        assert parse_label_list("Basics, OOP,  Libraries ,") == ["Basics", "OOP", "Libraries"]

    def test_parse_line_list(self):
        assert parse_label_list("* Basics\n* OOP\n\n* Libraries") == ["Basics", "OOP", "Libraries"]

    def test_extract_fenced_json(self):
        content = "Here you go:\n```json\n{\"text\": \"A\"}\n```\nEnjoy"
        assert json.loads(extract_json_block(content)) == {"text": "A"}

    def test_extract_bare_json(self):
        assert extract_json_block("noise {\"text\": \"A\"} trailing") == "{\"text\": \"A\"}"


class TestFallbackLabels:

    def test_keyword_match(self):
        assert fallback_labels("Learning Python")[0] == "Basic Syntax & Data Types"

    def test_short_keys_need_whole_words(self):
        """'ml' matches as a word but not inside 'html'."""
        assert fallback_labels("Intro to ML")[0] == "Data Preprocessing"
        assert fallback_labels("html")[0] != "Data Preprocessing"

    def test_generic_set(self):
        assert fallback_labels("Gardening") == GENERIC_LABELS

    def test_returns_a_copy(self):
        labels = fallback_labels("Gardening")
        labels.append("x")
        assert "x" not in GENERIC_LABELS


class TestOutlineNode:

    def test_from_loose_data(self):
        data = {"title": "Root", "children": ["A", {"text": "B", "children": [{"text": ""}, "B1"]}, 42]}
        outline = OutlineNode.from_dict(data)
        assert outline.to_dict() == {
            "text": "Root",
            "children": [
                {"text": "A", "children": []},
                {"text": "B", "children": [{"text": "B1", "children": []}]},
            ],
        }

    def test_rejects_unusable_data(self):
        assert OutlineNode.from_dict({"children": []}) is None
        assert OutlineNode.from_dict(["A"]) is None

    def test_max_depth_truncates(self):
        data = {"text": "a", "children": [{"text": "b", "children": [{"text": "c"}]}]}
        outline = OutlineNode.from_dict(data, max_depth=1)
        assert outline.children[0].children == []


class TestStaticGenerator:

    @pytest.mark.asyncio
    async def test_outline_uses_fallback_table(self):
        outline = await StaticGenerator().generate_outline("Python")
        assert outline.text == "Python"
        assert [c.text for c in outline.children] == fallback_labels("Python")


class TestGeminiGenerator:

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GeminiGenerator("")

    @pytest.mark.asyncio
    async def test_generate_labels(self):
        seen = {}

        def handler(request):
            seen["key"] = request.url.params["key"]
            seen["prompt"] = json.loads(request.content)["contents"][0]["parts"][0]["text"]
            return httpx.Response(200, json=gemini_reply("Basics, OOP, Libraries"))

        labels = await make_generator(handler).generate_labels("Python")
        assert labels == ["Basics", "OOP", "Libraries"]
        assert seen["key"] == "test-key"
        assert "Python" in seen["prompt"]

    @pytest.mark.asyncio
    async def test_labels_are_cached(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=gemini_reply("A, B"))

        generator = make_generator(handler)
        await generator.generate_labels("Topic")
        await generator.generate_labels("Topic")
        assert len(calls) == 1
        generator.clear_cache()
        await generator.generate_labels("Topic")
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_generate_outline_from_fenced_json(self):
        body = {"text": "Python", "children": [{"text": "Basics", "children": [{"text": "Loops", "children": []}]}]}

        def handler(request):
            return httpx.Response(200, json=gemini_reply("```json\n" + json.dumps(body) + "\n```"))

        outline = await make_generator(handler).generate_outline("Python")
        assert outline.to_dict() == body

    @pytest.mark.asyncio
    async def test_outline_with_invalid_json_is_empty(self):
        def handler(request):
            return httpx.Response(200, json=gemini_reply("Sorry, I cannot help with that."))

        outline = await make_generator(handler).generate_outline("Python")
        assert outline.text == "Python"
        assert outline.children == []

    @pytest.mark.asyncio
    async def test_http_error_raises_collaborator_failure(self):
        def handler(request):
            return httpx.Response(503, json={"error": "unavailable"})

        with pytest.raises(CollaboratorFailure) as exc_info:
            await make_generator(handler).generate_labels("Python")
        assert exc_info.value.topic == "Python"

    @pytest.mark.asyncio
    async def test_transport_error_raises_collaborator_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CollaboratorFailure):
            await make_generator(handler).generate_labels("Python")

    @pytest.mark.asyncio
    async def test_unexpected_envelope_raises_collaborator_failure(self):
        def handler(request):
            return httpx.Response(200, json={"candidates": []})

        with pytest.raises(CollaboratorFailure):
            await make_generator(handler).generate_outline("Python")

    @pytest.mark.asyncio
    async def test_non_json_body_raises_collaborator_failure(self):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(CollaboratorFailure):
            await make_generator(handler).generate_labels("Python")
