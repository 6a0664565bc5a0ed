"""叙述生成器适配层: 输出清洗、结构化解析、客户端错误映射。"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from domain.errors import GenerationParseError, UpstreamUnavailableError
from domain.models import (
    ChatMessage,
    CriminalRecordNarrative,
    DegenLevel,
    InterpretationNarrative,
    RiskLevel,
    RoastNarrative,
    Verdict,
)
from services.narrator import (
    NarrativeOk,
    NarrativeParseFailure,
    NarrativeService,
    clean_output,
    parse_narrative,
)


def _completion(text: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def _client(text: str | None) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion(text))
    return client


class TestParse:
    def test_clean_output_strips_fences(self) -> None:
        assert clean_output('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert clean_output("  hello  ") == "hello"
        assert clean_output(None) == ""

    def test_parse_fenced_roast(self) -> None:
        text = '```json\n{"verdict": "scam", "roast": "Rug incoming.", "tip": "Run."}\n```'
        result = parse_narrative(text, RoastNarrative)
        assert isinstance(result, NarrativeOk)
        assert result.value.verdict == Verdict.SCAM
        assert result.value.roast == "Rug incoming."

    def test_parse_tolerates_leading_prose(self) -> None:
        text = 'Sure! {"summary": "Swap 1 ETH.", "riskLevel": "low"}'
        result = parse_narrative(text, InterpretationNarrative)
        assert isinstance(result, NarrativeOk)
        assert result.value.risk_level == RiskLevel.LOW
        assert result.value.warnings == []

    def test_parse_criminal_record_aliases(self) -> None:
        text = (
            '{"alias": "Diamond Chad", "degenLevel": "most wanted", "degenScore": 140,'
            ' "charges": "Holding 3 honeypots", "priors": null, "verdict": "Guilty.", "advice": "Stop."}'
        )
        result = parse_narrative(text, CriminalRecordNarrative)
        assert isinstance(result, NarrativeOk)
        assert result.value.degen_level == DegenLevel.MOST_WANTED
        assert result.value.degen_score == 100
        assert result.value.charges == ["Holding 3 honeypots"]
        assert result.value.priors == []

    def test_unknown_verdict_label_becomes_none(self) -> None:
        result = parse_narrative('{"verdict": "CAUTION", "roast": "meh", "tip": "dyor"}', RoastNarrative)
        assert isinstance(result, NarrativeOk)
        assert result.value.verdict is None
        assert result.value.roast == "meh"

    def test_unknown_risk_level_becomes_none(self) -> None:
        text = '{"summary": "ok", "riskLevel": "MODERATE", "warnings": [], "details": []}'
        result = parse_narrative(text, InterpretationNarrative)
        assert isinstance(result, NarrativeOk)
        assert result.value.risk_level is None
        assert result.value.summary == "ok"

    @pytest.mark.parametrize(
        ("level", "score", "expected_score"),
        [
            ('"KINGPIN"', '"very high"', None),
            ("3", '"85"', 85),
            ('["WANTED"]', "true", None),
        ],
    )
    def test_unknown_degen_fields_become_none(
        self, level: str, score: str, expected_score: int | None
    ) -> None:
        text = (
            f'{{"alias": "Anon", "degenLevel": {level}, "degenScore": {score},'
            ' "verdict": "Guilty.", "advice": "Stop."}'
        )
        result = parse_narrative(text, CriminalRecordNarrative)
        assert isinstance(result, NarrativeOk)
        assert result.value.degen_level is None
        assert result.value.degen_score == expected_score

    def test_used_fields_stay_strict(self) -> None:
        result = parse_narrative('{"verdict": "CAUTION", "roast": "", "tip": "dyor"}', RoastNarrative)
        assert isinstance(result, NarrativeParseFailure)

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "I refuse to roast this token.",
            '{"roast": "missing tip"}',
            '["not", "an", "object"]',
            '{"roast": "ok", "tip": "ok"',
        ],
    )
    def test_malformed_output_is_failure(self, text: str) -> None:
        result = parse_narrative(text, RoastNarrative)
        assert isinstance(result, NarrativeParseFailure)
        assert result.raw_text == text
        assert result.reason


class TestNarrativeService:
    @pytest.mark.asyncio
    async def test_generate_returns_schema(self) -> None:
        client = _client('{"verdict": "SAFE", "roast": "Boring.", "tip": "Hold."}')
        service = NarrativeService(client=client)

        narrative = await service.generate(RoastNarrative, "system", "user")

        assert narrative.tip == "Hold."
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "system"}
        assert messages[1] == {"role": "user", "content": "user"}

    @pytest.mark.asyncio
    async def test_generate_raises_parse_error_with_raw_text(self) -> None:
        service = NarrativeService(client=_client("lol no json"))

        with pytest.raises(GenerationParseError) as exc_info:
            await service.generate(RoastNarrative, "system", "user")

        assert exc_info.value.raw_text == "lol no json"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_generate_does_not_retry(self) -> None:
        client = _client("garbage")
        service = NarrativeService(client=client)

        with pytest.raises(GenerationParseError):
            await service.generate(RoastNarrative, "system", "user")

        assert client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_transport_error_is_upstream_unavailable(self) -> None:
        from openai import APIConnectionError

        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            side_effect=APIConnectionError(request=MagicMock())
        )
        service = NarrativeService(client=client)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await service.generate(RoastNarrative, "system", "user")

        assert exc_info.value.source == "llm"

    @pytest.mark.asyncio
    async def test_missing_api_key_is_upstream_unavailable(self) -> None:
        service = NarrativeService()
        service._settings = service._settings.model_copy(update={"llm_api_key": ""})

        with pytest.raises(UpstreamUnavailableError):
            await service.generate(RoastNarrative, "system", "user")

    @pytest.mark.asyncio
    async def test_chat_passes_history(self) -> None:
        client = _client("  It's a honeypot, ser.  ")
        service = NarrativeService(client=client)
        history = [
            ChatMessage(role="user", content="is it safe?"),
            ChatMessage(role="assistant", content="no"),
            ChatMessage(role="user", content="why?"),
        ]

        reply = await service.chat("system", history)

        assert reply.reply == "It's a honeypot, ser."
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]

    @pytest.mark.asyncio
    async def test_chat_empty_reply_is_parse_error(self) -> None:
        service = NarrativeService(client=_client(None))

        with pytest.raises(GenerationParseError):
            await service.chat("system", [ChatMessage(content="hi")])
