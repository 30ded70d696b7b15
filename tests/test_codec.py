import datetime

import pytest

from esia.crypto.codec import b64url_decode, b64url_encode, get_timestamp, url_safe


def test_url_safe_replaces_chars():
    assert url_safe("1+2+3+4/5/6/7=") == "1-2-3-4_5_6_7"


def test_url_safe_strips_only_first_padding_char():
    # kept for compatibility with existing secrets; see DESIGN.md
    assert url_safe("abc+==") == "abc-="
    assert url_safe("  a/b \n") == "a_b"


def test_get_timestamp_fixed_zone():
    tz = datetime.timezone(datetime.timedelta(hours=10))
    assert get_timestamp(1537788645624, tz=tz) == "2018.09.24 21:30:45 +1000"


def test_get_timestamp_negative_offset():
    tz = datetime.timezone(datetime.timedelta(hours=-5))
    assert get_timestamp(1537788645624, tz=tz) == "2018.09.24 06:30:45 -0500"


def test_get_timestamp_defaults_to_now():
    ts = get_timestamp()
    date, time_, offset = ts.split(" ")
    assert len(date.split(".")) == 3
    assert len(time_.split(":")) == 3
    assert offset[0] in "+-" and len(offset) == 5


def test_b64url_roundtrip_without_padding():
    data = b"\xfb\xff\x00token"
    enc = b64url_encode(data)
    assert "=" not in enc and "+" not in enc and "/" not in enc
    assert b64url_decode(enc) == data


@pytest.mark.parametrize("bad", ["a+b", "a/b", "abcde", "ab!c"])
def test_b64url_decode_rejects_invalid(bad):
    with pytest.raises(ValueError):
        b64url_decode(bad)
