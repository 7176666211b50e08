"""
Tests for bitcoin data structures.

Focuses on BTC to satoshis conversion precision, since scantxoutset
reports amounts in BTC.
"""

from decimal import Decimal

import pytest

from spox.bitcoin import SATS_PER_BTC, BlockRef, btc_to_sats


class TestBtcToSats:
    """Tests for btc_to_sats conversion function."""

    def test_one_btc(self):
        """1 BTC = 100,000,000 satoshis."""
        assert btc_to_sats(1) == 100_000_000
        assert btc_to_sats(1.0) == 100_000_000
        assert btc_to_sats("1") == 100_000_000
        assert btc_to_sats(Decimal("1")) == 100_000_000

    def test_one_satoshi(self):
        assert btc_to_sats(0.00000001) == 1
        assert btc_to_sats(Decimal("0.00000001")) == 1

    def test_point_one_btc_float_precision(self):
        """
        float(0.1) * 1e8 = 9999999.999999998, the conversion must still
        give exactly 10,000,000 satoshis.
        """
        assert btc_to_sats(0.1) == 10_000_000
        assert btc_to_sats(0.3) == 30_000_000

    def test_fractional_satoshi_raises(self):
        with pytest.raises(ValueError, match="fractional satoshis"):
            btc_to_sats("0.000000001")

    def test_sats_per_btc_constant(self):
        assert SATS_PER_BTC == Decimal("100000000")


class TestBlockRef:
    """Tests for chain tip comparison."""

    def test_equal_when_height_and_hash_match(self):
        assert BlockRef(200, "aa" * 32) == BlockRef(200, "aa" * 32)

    def test_fork_at_same_height_differs(self):
        assert BlockRef(200, "aa" * 32) != BlockRef(200, "bb" * 32)

    def test_str(self):
        assert str(BlockRef(7, "ab")) == "Block(hash=ab, height=7)"
