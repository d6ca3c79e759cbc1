from __future__ import annotations

import pytest

from loreweaver.models import Models
from loreweaver.rollover import NeverRollover, TokenThresholdRollover
from loreweaver.schemas import StoryPart


def test_threshold_is_a_share_of_the_window():
    policy = TokenThresholdRollover()
    assert policy.threshold(Models.GPT3) == 3276
    assert policy.threshold(Models.GPT4) == 6553


@pytest.mark.parametrize("tokens, expected", [(0, False), (3275, False), (3276, True), (5000, True)])
def test_should_rollover(tokens: int, expected: bool):
    part = StoryPart(context_tokens=tokens)
    assert TokenThresholdRollover(0.8).should_rollover(part, Models.GPT3) is expected


def test_never_rollover():
    assert NeverRollover().should_rollover(StoryPart(context_tokens=10**6), Models.GPT3) is False


@pytest.mark.parametrize("ratio", [0, -0.1, 1.5])
def test_ratio_must_be_a_fraction(ratio: float):
    with pytest.raises(ValueError):
        TokenThresholdRollover(ratio)
