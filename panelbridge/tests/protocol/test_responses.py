from __future__ import annotations

import pytest

from panelbridge.protocol.core.defs import ReplyTokens
from panelbridge.protocol.responses import ReplyMatch, classify_reply, extract_lamp_hours


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("PON", ReplyMatch(power=True)),
        ("POF", ReplyMatch(power=False)),
        ("LH?4821", ReplyMatch(lamp_hours="4821")),
        ("OK", ReplyMatch()),
        ("", ReplyMatch()),
    ],
)
def test_classify_reply_basic(raw, expected):
    assert classify_reply(raw) == expected


def test_power_off_wins_over_lamp_hours():
    assert classify_reply("POF LH?12") == ReplyMatch(power=False, lamp_hours=None)


def test_power_on_with_lamp_hours_reports_both():
    assert classify_reply("PON LH?77") == ReplyMatch(power=True, lamp_hours="77")


def test_power_on_checked_before_power_off():
    assert classify_reply("PONPOF").power is True


def test_custom_tokens():
    tokens = ReplyTokens(power_on="ON", power_off="STBY", lamp_hours="LAMP=", value_separator="=")

    assert classify_reply("STBY", tokens).power is False
    assert classify_reply("LAMP=1200", tokens).lamp_hours == "1200"


def test_extract_lamp_hours_strips_delimiters():
    assert extract_lamp_hours("\x02LH?4821\x03") == "4821"
    assert extract_lamp_hours("LH?4821") == "4821"


def test_extract_lamp_hours_takes_text_after_first_separator():
    assert extract_lamp_hours("LH?12?34") == "12?34"


def test_extract_lamp_hours_without_separator_returns_whole_text():
    assert extract_lamp_hours("4821") == "4821"
