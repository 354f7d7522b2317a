from tripplanner.main import redact_api_keys

GEMINI_KEY = "AIza" + "x" * 35


def test_redact_key_query_param():
    event = {"url": "https://generativelanguage.googleapis.com/v1beta/models?key=SECRET123&alt=json"}
    out = redact_api_keys(None, None, event.copy())
    assert out["url"] == "https://generativelanguage.googleapis.com/v1beta/models?key=REDACTED&alt=json"


def test_redact_gemini_key_anywhere():
    event = {"event": "generation_failed", "error": f"API key {GEMINI_KEY} not valid"}
    out = redact_api_keys(None, None, event.copy())
    assert GEMINI_KEY not in out["error"]
    assert "REDACTED" in out["error"]


def test_redact_nested():
    event = {"a": {"b": ["foo", f"https://...&key={GEMINI_KEY}"]}, "t": (GEMINI_KEY,)}
    out = redact_api_keys(None, None, event.copy())
    assert out["a"]["b"][0] == "foo"
    assert all(GEMINI_KEY not in x for x in out["a"]["b"])
    assert out["t"] == ("REDACTED",)


def test_non_strings_untouched():
    event = {"days": 3, "ok": True, "missing": None}
    assert redact_api_keys(None, None, event.copy()) == event
