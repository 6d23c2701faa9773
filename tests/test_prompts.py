"""
Tests for prompt construction.
"""
from query_pipeline.locales import load_locale
from query_pipeline.prompts import build_request, build_system_prompt


def test_request_is_system_then_user():
    locale = load_locale("hu")
    request = build_request("Mikor vagytok nyitva?", "Hétfőtől péntekig 9-17", locale)

    messages = request.messages()
    assert [m["role"] for m in messages] == ["system", "user"]
    assert messages[1]["content"] == "Mikor vagytok nyitva?"
    assert "Hétfőtől péntekig 9-17" in messages[0]["content"]


def test_context_is_inserted_verbatim():
    context = "Line one\nLine {two} with braces"
    prompt = build_system_prompt(context, "Rules\n{context}\nMore rules")

    assert prompt == "Rules\nLine one\nLine {two} with braces\nMore rules"


def test_template_order_is_preserved():
    locale = load_locale("en")
    prompt = build_request("hours?", "CTX", locale).system_prompt

    role = prompt.index("You are a helpful assistant.")
    exclusive = prompt.index("EXCLUSIVELY")
    block = prompt.index("CTX")
    rules = prompt.index("### RULES:")
    assert role < exclusive < block < rules


def test_query_is_not_modified():
    locale = load_locale("en")
    query = "  what are the HOURS?  "

    request = build_request(query, "ctx", locale)
    assert request.query == query
    assert request.messages()[1]["content"] == query
    assert request.context == "ctx"
