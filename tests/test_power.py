from app.core.analytics.power import normalized_power
from app.core.analytics.time_utils import format_clock


def test_normalized_power_constant():
    # constant power should equal itself
    powers = [200] * 120
    assert normalized_power(powers) == 200


def test_normalized_power_short_stream_is_zero():
    assert normalized_power([300] * 29) == 0
    assert normalized_power([]) == 0


def test_normalized_power_rewards_variability():
    powers = [100] * 60 + [400] * 60
    avg = sum(powers) / len(powers)
    assert normalized_power(powers) > avg


def test_normalized_power_treats_none_as_zero():
    assert normalized_power([None] * 40) == 0


def test_format_clock():
    assert format_clock(0) == "00:00:00"
    assert format_clock(3661) == "01:01:01"
    assert format_clock(59.9) == "00:00:59"
    assert format_clock(90061) == "25:01:01"
    assert format_clock(None) is None
