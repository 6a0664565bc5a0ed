"""日志脱敏。"""

from core.config import AppSettings
from core.logging import _secrets, redact


class TestRedaction:
    def test_masks_alchemy_key_and_llm_key(self) -> None:
        settings = AppSettings(
            rpc_url="https://eth-mainnet.g.alchemy.com/v2/abcdef0123456789XYZ",
            llm_api_key="sk-secret-llm",
        )
        secrets = _secrets(settings)

        text = redact(
            "POST https://eth-mainnet.g.alchemy.com/v2/abcdef0123456789XYZ failed (key sk-secret-llm)",
            secrets,
        )

        assert "abcdef0123456789XYZ" not in text
        assert "sk-secret-llm" not in text
        assert text.count("***") == 2

    def test_short_path_segment_is_not_a_secret(self) -> None:
        settings = AppSettings(rpc_url="http://localhost:8545/", llm_api_key="")
        assert _secrets(settings) == []
