"""共享 fixtures: 各服务的 mock。"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from domain.models import CriminalRecordNarrative, InterpretationNarrative, RoastNarrative
from tests.factories import TOKEN, goplus_record, ok_simulation


@pytest.fixture
def goplus() -> MagicMock:
    service = MagicMock()
    service.get_token_security = AsyncMock(return_value={TOKEN: goplus_record()})
    return service


@pytest.fixture
def simulator() -> MagicMock:
    service = MagicMock()
    service.simulate = AsyncMock(return_value=ok_simulation())
    return service


@pytest.fixture
def narrator() -> MagicMock:
    """按请求的 schema 返回一份合法的叙述（标签故意与规则引擎不一致）。"""
    canned = {
        RoastNarrative: RoastNarrative(verdict="SCAM", roast="Looks fine.", tip="DYOR."),
        InterpretationNarrative: InterpretationNarrative(
            summary="You send nothing.", riskLevel="HIGH", warnings=[], details=[]
        ),
        CriminalRecordNarrative: CriminalRecordNarrative(
            alias="Paper Hands Pete",
            degenLevel="MOST_WANTED",
            degenScore=99,
            charges=["Possession of shitcoins"],
            priors=[],
            verdict="Guilty.",
            advice="Touch grass.",
        ),
    }

    async def generate(schema: type, system: str, user: str) -> Any:
        return canned[schema]

    service = MagicMock()
    service.generate = AsyncMock(side_effect=generate)
    service.chat = AsyncMock()
    return service
