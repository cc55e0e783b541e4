from gemini_bridge.models import (
    DEFAULT_MODEL,
    get_all_model_ids,
    get_model,
    is_thinking_model,
    is_valid_model,
    supports_images,
)


def test_default_model_is_in_catalog():
    assert is_valid_model(DEFAULT_MODEL)
    assert DEFAULT_MODEL in get_all_model_ids()
    assert get_model(DEFAULT_MODEL).max_tokens > 0


def test_unknown_model_lookups():
    assert get_model("gpt-4o") is None
    assert not is_valid_model("gpt-4o")
    assert not is_thinking_model("gpt-4o")
    assert not supports_images("gpt-4o")


def test_thinking_capable_models():
    assert is_thinking_model("gemini-2.5-pro")
    assert is_thinking_model("gemini-2.5-flash")
    assert not is_thinking_model("gemini-exp-1206")
