"""Tests for trading pattern analysis and the strategy prompt."""

from types import SimpleNamespace

from txfeed.schemas import TradingPattern
from txfeed.strategy import analyze_trading_pattern, build_strategy_prompt, generate_strategy


class FakeOpenAI:
    def __init__(self, content="//@version=5\nstrategy('x')"):
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self._content = content

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def test_empty_transfers():
    pattern = analyze_trading_pattern([])
    assert pattern.avg_volume == 0
    assert pattern.most_active_hour == 0
    assert pattern.buying_dips is False


def test_volume_stats_and_hour():
    transfers = [
        {"value": 1.0, "metadata": {"blockTimestamp": "2024-01-01T14:05:00.000Z"}},
        {"value": 2.0, "metadata": {"blockTimestamp": "2024-01-01T14:30:00.000Z"}},
        {"value": 3.0, "metadata": {"blockTimestamp": "2024-01-02T09:00:00.000Z"}},
        {"value": "4.0", "metadata": {"blockTimestamp": "2024-01-03T14:59:00.000Z"}},
    ]

    pattern = analyze_trading_pattern(transfers)

    assert pattern.avg_volume == 2.5
    assert pattern.max_volume == 4.0
    assert pattern.min_volume == 1.0
    assert pattern.most_active_hour == 14
    assert pattern.buying_dips is True


def test_unparseable_values_count_as_zero():
    pattern = analyze_trading_pattern([{"value": None}, {"value": "abc"}, {"amount": 5}])
    assert pattern.max_volume == 5.0
    assert pattern.min_volume == 0.0


def test_falling_volumes_are_not_dip_buying():
    transfers = [{"value": v} for v in (5, 4, 3, 2)]
    assert analyze_trading_pattern(transfers).buying_dips is False


def test_prompt_and_generation():
    pattern = TradingPattern(avg_volume=1.5, max_volume=3, min_volume=0.5, most_active_hour=9, buying_dips=True)
    client = FakeOpenAI()

    prompt = build_strategy_prompt(pattern)
    text = generate_strategy(client, "gpt-test", pattern)

    assert "Most active trading hour: 9:00 UTC" in prompt
    assert "Tendency to buy dips: Yes" in prompt
    assert text.startswith("//@version=5")
    assert client.requests[0]["model"] == "gpt-test"
    assert client.requests[0]["messages"][1]["content"] == prompt
