"""GoPlus 记录规范化。"""

import pytest

from domain.errors import NotFoundError
from domain.models import TokenFacts
from services.normalizer import normalize_facts, normalize_record, parse_flag, parse_tax_pct
from tests.factories import TOKEN, goplus_record


class TestParsers:
    def test_parse_flag(self) -> None:
        assert parse_flag("1") is True
        assert parse_flag(1) is True
        assert parse_flag(" 1 ") is True
        assert parse_flag("0") is False
        assert parse_flag("") is False
        assert parse_flag(None) is False
        assert parse_flag("true") is False
        assert parse_flag(True) is False

    def test_parse_tax_pct(self) -> None:
        assert parse_tax_pct("0.05") == pytest.approx(5.0)
        assert parse_tax_pct("0.1") == pytest.approx(10.0)
        assert parse_tax_pct("0") == 0.0
        assert parse_tax_pct("1") == 100.0
        assert parse_tax_pct(None) == 0.0
        assert parse_tax_pct("") == 0.0
        assert parse_tax_pct("abc") == 0.0

    def test_parse_tax_pct_clamps(self) -> None:
        assert parse_tax_pct("1.5") == 100.0
        assert parse_tax_pct("-0.2") == 0.0
        assert parse_tax_pct("NaN") == 0.0


class TestNormalizeFacts:
    def test_full_record(self) -> None:
        record = goplus_record(
            is_honeypot="1",
            sell_tax="0.99",
            is_mintable="1",
            owner_change_balance="1",
            trust_list="1",
        )
        facts = normalize_facts({TOKEN: record}, TOKEN)

        assert facts.is_honeypot is True
        assert facts.sell_tax_pct == pytest.approx(99.0)
        assert facts.owner_can_mint is True
        assert facts.owner_can_change_balance is True
        assert facts.is_trusted is True
        assert facts.is_open_source is True
        assert facts.display_name == "Pepe (PEPE)"

    def test_lookup_is_case_insensitive(self) -> None:
        facts = normalize_facts({TOKEN: goplus_record()}, TOKEN.upper().replace("0X", "0x"))
        assert facts.token_symbol == "PEPE"

    def test_missing_record_raises_not_found(self) -> None:
        with pytest.raises(NotFoundError):
            normalize_facts({}, TOKEN)

    def test_missing_result_raises_not_found(self) -> None:
        with pytest.raises(NotFoundError):
            normalize_facts(None, TOKEN)

    def test_null_record_raises_not_found(self) -> None:
        with pytest.raises(NotFoundError):
            normalize_facts({TOKEN: None}, TOKEN)

    def test_empty_record_yields_defaults(self) -> None:
        """所有字段缺失 → 全默认值，不抛异常。"""
        assert normalize_record({}) == TokenFacts()

    def test_blank_names_become_none(self) -> None:
        facts = normalize_record({"token_name": "  ", "token_symbol": ""})
        assert facts.token_name is None
        assert facts.display_name == "Unknown Token"
