"""
Tests for inbound request parsing and normalization.
"""

from services.chat_request import ChatRequest, Message


def _normalize(body: dict):
    return ChatRequest.model_validate(body).normalize()


class TestLenientParsing:
    """Legacy and malformed shapes are accepted."""

    def test_empty_body(self):
        request = _normalize({})
        assert request.prompt is None
        assert request.history == []
        assert request.messages == []
        assert request.lecture is None
        assert request.user_text is None

    def test_non_list_fields_treated_as_empty(self):
        request = _normalize({"messages": "hello", "history": None, "attachments": {"name": "x"}})
        assert request.messages == []
        assert request.history == []
        assert request.attachments == []

    def test_non_object_items_dropped(self):
        request = _normalize({"history": ["oops", {"role": "user", "content": "hi"}, 42]})
        assert request.history == [Message(role="user", content="hi")]

    def test_legacy_message_field_backfilled(self):
        request = _normalize({"history": [{"role": "assistant", "message": "Earlier reply"}]})
        assert request.history == [Message(role="assistant", content="Earlier reply")]

    def test_content_preferred_over_legacy_message(self):
        request = _normalize({"messages": [{"role": "user", "content": "new", "message": "old"}]})
        assert request.messages[0].content == "new"

    def test_missing_role_defaults_to_user(self):
        request = _normalize({"messages": [{"content": "hi"}]})
        assert request.messages[0].role == "user"

    def test_null_role_defaults_to_user(self):
        request = _normalize({"messages": [{"role": None, "content": "hi"}]})
        assert request.messages[0] == Message(role="user", content="hi")

    def test_attachment_nulls_and_scalars_coerced(self):
        request = _normalize({
            "attachments": [
                {"name": "notes.pdf", "content": None},
                {"name": 7, "content": 3.5},
            ]
        })
        assert [(a.name, a.content) for a in request.attachments] == [("notes.pdf", ""), ("7", "3.5")]

    def test_system_prompt_null_content(self):
        settings = _normalize({"preferences": {"systemPrompts": [{"content": None}]}}).settings
        assert settings.system_prompt is None

    def test_unknown_fields_ignored(self):
        request = _normalize({"prompt": "hi", "stream": True, "model": "x"})
        assert request.prompt == "hi"


class TestUserText:
    """The new user turn."""

    def test_prompt_wins_over_message(self):
        assert _normalize({"prompt": "p", "message": "m"}).user_text == "p"

    def test_message_used_without_prompt(self):
        assert _normalize({"message": "m"}).user_text == "m"

    def test_empty_prompt_falls_back_to_message(self):
        assert _normalize({"prompt": "", "message": "m"}).user_text == "m"


class TestLectureReference:
    """Lecture id and auth token travel together."""

    def test_both_present(self):
        request = _normalize({"lectureId": "L1", "authToken": "tok"})
        assert request.lecture.lecture_id == "L1"
        assert request.lecture.auth_token == "tok"

    def test_token_missing(self):
        assert _normalize({"lectureId": "L1"}).lecture is None


class TestGenerationSettings:
    """preferences and aiConfig merge."""

    def test_preferences(self):
        settings = _normalize({
            "preferences": {
                "model": "llama-3",
                "temperature": 0.2,
                "maxTokens": 800,
                "systemPrompts": [{"content": "Be brief."}],
            }
        }).settings
        assert settings.model == "llama-3"
        assert settings.temperature == 0.2
        assert settings.max_tokens == 800
        assert settings.system_prompt == "Be brief."

    def test_ai_config_alias(self):
        settings = _normalize({"aiConfig": {"model": "mistral", "maxTokens": 300}}).settings
        assert settings.model == "mistral"
        assert settings.max_tokens == 300
        assert settings.temperature is None

    def test_ai_config_wins_generation_fields(self):
        settings = _normalize({
            "prompt": "hi",
            "preferences": {"model": "pref-model", "maxTokens": 100, "temperature": 0.1},
            "aiConfig": {"model": "cfg-model", "maxTokens": 900, "temperature": 0.9},
        }).settings
        assert settings.model == "cfg-model"
        assert settings.max_tokens == 900
        assert settings.temperature == 0.9

    def test_preferences_fill_gaps(self):
        settings = _normalize({
            "preferences": {"model": "llama-3", "temperature": 0.3},
            "aiConfig": {"maxTokens": 250},
        }).settings
        assert settings.model == "llama-3"
        assert settings.temperature == 0.3
        assert settings.max_tokens == 250

    def test_preferences_win_system_prompt(self):
        settings = _normalize({
            "preferences": {"systemPrompts": [{"content": "From preferences."}]},
            "aiConfig": {"systemPrompts": [{"content": "From aiConfig."}]},
        }).settings
        assert settings.system_prompt == "From preferences."

    def test_ai_config_system_prompt_as_fallback(self):
        settings = _normalize({
            "preferences": {"model": "llama-3"},
            "aiConfig": {"systemPrompts": [{"content": "From aiConfig."}]},
        }).settings
        assert settings.system_prompt == "From aiConfig."

    def test_unusable_numbers_ignored(self):
        settings = _normalize({"aiConfig": {"temperature": "hot", "maxTokens": True}}).settings
        assert settings.temperature is None
        assert settings.max_tokens is None

    def test_numeric_strings_and_fractions_coerced(self):
        settings = _normalize({"aiConfig": {"temperature": "0.4", "maxTokens": 300.7}}).settings
        assert settings.temperature == 0.4
        assert settings.max_tokens == 300

    def test_non_object_settings_ignored(self):
        settings = _normalize({"preferences": "fast", "aiConfig": ["x"]}).settings
        assert settings.model is None

    def test_zero_temperature_kept(self):
        assert _normalize({"preferences": {"temperature": 0}}).settings.temperature == 0

    def test_empty_system_prompts(self):
        settings = _normalize({"preferences": {"systemPrompts": "nope"}}).settings
        assert settings.system_prompt is None

    def test_no_settings(self):
        settings = _normalize({}).settings
        assert settings.model is None
        assert settings.max_tokens is None


class TestTotalChars:
    """Size used for large-content classification."""

    def test_counts_every_text_field(self):
        request = _normalize({
            "prompt": "abc",
            "message": "de",
            "messages": [{"role": "user", "content": "fgh"}],
            "history": [{"role": "assistant", "message": "ij"}],
        })
        assert request.total_chars() == 10
