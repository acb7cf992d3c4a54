"""Tests for configuration loading and token estimation policies."""

import json
from pathlib import Path

import pytest

from transitbot.config.loader import load_config, save_config
from transitbot.config.schema import DEFAULT_RESTRICTED_TERMS, Config
from transitbot.utils.tokens import (
    count_tokens,
    estimate_message_tokens,
    estimate_messages_tokens,
    estimate_tokens,
    get_estimator,
    trim_to_budget,
)


class TestConfig:
    def test_defaults(self) -> None:
        config = Config()
        assert config.session.max_age_s == 1800
        assert config.session.max_history == 20
        assert config.session.max_exchanges == 10
        assert config.session.max_prompt_tokens == 8000
        assert config.agent.max_attempts == 3
        assert config.agent.retry_base_delay_s == 1.0
        assert config.guardrails.restricted_terms == list(DEFAULT_RESTRICTED_TERMS)
        assert config.snapshot_file is None
        assert config.get_api_key() is None

    def test_load_camel_case_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "agent": {"model": "openai/gpt-4o-mini", "maxAttempts": 5},
                    "session": {"maxPromptTokens": 4000},
                    "guardrails": {"restrictedTerms": ["rival app"]},
                    "providers": {"openrouter": {"apiKey": "sk-or-test"}},
                    "snapshotPath": "~/buses.json",
                }
            ),
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.agent.model == "openai/gpt-4o-mini"
        assert config.agent.max_attempts == 5
        assert config.session.max_prompt_tokens == 4000
        assert config.guardrails.restricted_terms == ["rival app"]
        assert config.get_api_key() == "sk-or-test"
        assert config.get_api_base() == "https://openrouter.ai/api/v1"
        assert config.snapshot_file == Path("~/buses.json").expanduser()

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path / "absent.json").agent.model == "perplexity/sonar"

    def test_corrupt_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_config(path).session.max_history == 20

    def test_save_round_trip(self, tmp_path: Path) -> None:
        config = Config()
        config.providers.perplexity.api_key = "pplx-test"
        path = save_config(config, tmp_path / "nested" / "config.json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["providers"]["perplexity"]["apiKey"] == "pplx-test"
        assert load_config(path).get_api_key() == "pplx-test"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TRANSITBOT_AGENT__MODEL", "anthropic/claude-3-haiku")
        monkeypatch.setenv("TRANSITBOT_SESSION__MAX_HISTORY", "12")
        config = Config()
        assert config.agent.model == "anthropic/claude-3-haiku"
        assert config.session.max_history == 12


class TestTokenEstimators:
    def test_heuristic_rounds_up(self) -> None:
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_heuristic_counts_utf8_bytes(self) -> None:
        # Each of these characters is three bytes in UTF-8
        assert estimate_tokens("ಬಸ್") == 3

    def test_message_estimate_uses_json(self) -> None:
        message = {"role": "user", "content": "hi"}
        assert estimate_message_tokens(message) == estimate_tokens(json.dumps(message))

    def test_resolve_by_name(self) -> None:
        assert get_estimator("heuristic") is estimate_tokens
        assert get_estimator("tiktoken") is count_tokens

    def test_unknown_estimator(self) -> None:
        with pytest.raises(ValueError, match="Unknown token estimator"):
            get_estimator("abacus")


class TestTrimToBudget:
    def _history(self) -> list[dict]:
        return [
            {"role": "system", "content": "s" * 400},
            {"role": "user", "content": "a" * 400},
            {"role": "assistant", "content": "b" * 400},
            {"role": "user", "content": "c" * 400},
        ]

    def test_within_budget_unchanged(self) -> None:
        messages = self._history()
        assert trim_to_budget(messages, 10_000) == messages

    def test_drops_oldest_non_system_first(self) -> None:
        messages = self._history()
        budget = estimate_messages_tokens(messages) - 1

        kept = trim_to_budget(messages, budget)

        assert [m["content"][0] for m in kept] == ["s", "b", "c"]
        assert estimate_messages_tokens(kept) <= budget

    def test_protected_tail_survives_tiny_budget(self) -> None:
        kept = trim_to_budget(self._history(), 1, protected_tail=1)
        assert [m["content"][0] for m in kept] == ["s", "c"]
