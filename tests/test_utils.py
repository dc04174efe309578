from __future__ import annotations

import pytest

from slotroute._utils import (
    b,
    crc16,
    hash_slot,
    hash_tag,
    nativestr,
    pattern_hash_tag,
    query_param_to_bool,
)
from slotroute.commands.constants import CommandName
from slotroute.constants import HASH_SLOTS


class TestHashing:
    def test_crc16_check_value(self):
        # XMODEM check value
        assert crc16(b"123456789") == 0x31C3

    @pytest.mark.parametrize(
        "key, slot",
        [
            (b"foo", 12182),
            (b"bar", 5061),
            (b"", 0),
        ],
    )
    def test_known_slots(self, key, slot):
        assert hash_slot(key) == slot

    def test_slot_in_range(self):
        for i in range(1000):
            assert 0 <= hash_slot(f"key:{i}".encode()) < HASH_SLOTS

    @pytest.mark.parametrize(
        "key, tag",
        [
            (b"{user1000}.following", b"user1000"),
            (b"foo{bar}{zap}", b"bar"),
            (b"foo{{bar}}zap", b"{bar"),
            (b"foo{}{bar}", None),
            (b"{}foo", None),
            (b"foo{bar", None),
            (b"foo}bar{", None),
            (b"plain", None),
        ],
    )
    def test_hash_tag(self, key, tag):
        assert hash_tag(key) == tag

    def test_shared_tag_shares_slot(self):
        assert hash_slot(b"{user1000}.following") == hash_slot(b"{user1000}.followers")
        assert hash_slot(b"{user1000}.following") == hash_slot(b"user1000")

    def test_empty_tag_hashes_whole_key(self):
        assert hash_slot(b"foo{}{bar}") == crc16(b"foo{}{bar}") % HASH_SLOTS
        assert hash_slot(b"foo{}{bar}") != hash_slot(b"bar")

    @pytest.mark.parametrize(
        "pattern, tag",
        [
            (b"{shard1}*", b"shard1"),
            (b"{shard1}:user:?", b"shard1"),
            (b"prefix{shard1}*", b"shard1"),
            (b"*", None),
            (b"user:*", None),
            (b"*{shard1}", None),
            (b"us?r{shard1}*", None),
            (b"{shard*}", None),
            (b"{sh[ab]rd}", None),
            (b"\\{shard1}*", None),
            (b"{}*", None),
        ],
    )
    def test_pattern_hash_tag(self, pattern, tag):
        assert pattern_hash_tag(pattern) == tag


class TestConversions:
    def test_b(self):
        assert b("foo") == b"foo"
        assert b(b"foo") == b"foo"
        assert b(1) == b"1"
        assert b("ü", "latin-1") == b"\xfc"

    def test_nativestr(self):
        assert nativestr(b"foo") == "foo"
        assert nativestr("foo") == "foo"
        assert nativestr(1.5) == "1.5"
        with pytest.raises(ValueError):
            nativestr(None)

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, None),
            ("", None),
            ("0", False),
            ("no", False),
            ("False", False),
            ("1", True),
            ("yes", True),
            (1, True),
        ],
    )
    def test_query_param_to_bool(self, value, expected):
        assert query_param_to_bool(value) is expected


class TestCommandName:
    def test_case_insensitive(self):
        assert CommandName.GET == b"get"
        assert CommandName.GET == "GET"
        assert CommandName.GET != CommandName.SET
        assert b"WATCH" in {CommandName.WATCH}

    def test_str(self):
        assert str(CommandName.CLUSTER_SLOTS) == "CLUSTER SLOTS"
