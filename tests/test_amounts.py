"""
Amount extraction, validation and aggregation tests.
"""
import itertools
import math

import pytest

from core.aggregator import VolumeAggregator
from core.extractor import AmountExtractor
from core.models import AmountStrategy, TransactionRecord
from core.validator import AmountValidator
from conftest import FEE_PAYER, JUP_PROGRAM_ID, WSOL_MINT, rpc_result, token_balance

OWNER = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
OTHER_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class TestNativeBalanceDiff:
    """Tests for the native balance strategy."""

    def test_lamport_diff_scaled_to_sol(self, make_record):
        extractor = AmountExtractor(JUP_PROGRAM_ID, AmountStrategy.NATIVE_BALANCE_DIFF, scaling_factor=1e9)

        parsed = extractor.extract(make_record(pre_balance=5_000_000_000, post_balance=4_000_000_000))

        assert parsed.raw_amount == 1.0
        assert parsed.owner == FEE_PAYER
        assert parsed.strategy == AmountStrategy.NATIVE_BALANCE_DIFF

    def test_balance_increase_is_absolute(self, make_record):
        extractor = AmountExtractor(JUP_PROGRAM_ID)

        parsed = extractor.extract(make_record(pre_balance=1_000_000_000, post_balance=3_500_000_000))

        assert parsed.raw_amount == 2.5

    def test_no_program_instruction_is_not_applicable(self, make_record):
        extractor = AmountExtractor(JUP_PROGRAM_ID)

        record = make_record(program_id="whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc")

        assert extractor.extract(record) is None

    def test_program_index_out_of_range_is_not_applicable(self):
        extractor = AmountExtractor(JUP_PROGRAM_ID)
        result = rpc_result()
        result["transaction"]["message"]["instructions"] = [{"programIdIndex": 42, "accounts": []}]

        assert extractor.extract(TransactionRecord.from_rpc("sig", result)) is None

    def test_missing_balances_give_zero(self):
        extractor = AmountExtractor(JUP_PROGRAM_ID)
        result = rpc_result()
        del result["meta"]

        parsed = extractor.extract(TransactionRecord.from_rpc("sig", result))

        assert parsed.raw_amount == 0.0


class TestTokenBalanceDiff:
    """Tests for the wrapped SOL token balance strategy."""

    def _extractor(self):
        return AmountExtractor(JUP_PROGRAM_ID, AmountStrategy.TOKEN_BALANCE_DIFF, wrapped_mint=WSOL_MINT)

    def test_pre_post_diff_with_owner(self, make_record):
        record = make_record(
            pre_token_balances=[token_balance(WSOL_MINT, OWNER, "10.0")],
            post_token_balances=[token_balance(WSOL_MINT, OWNER, "9.0")],
        )

        parsed = self._extractor().extract(record)

        assert parsed.raw_amount == 1.0
        assert parsed.owner == OWNER
        assert parsed.strategy == AmountStrategy.TOKEN_BALANCE_DIFF

    def test_other_mints_ignored(self, make_record):
        record = make_record(
            pre_token_balances=[
                token_balance(OTHER_MINT, OWNER, "500.0", account_index=2),
                token_balance(WSOL_MINT, OWNER, "0.5"),
            ],
            post_token_balances=[
                token_balance(OTHER_MINT, OWNER, "0.0", account_index=2),
                token_balance(WSOL_MINT, OWNER, "3.0"),
            ],
        )

        assert self._extractor().extract(record).raw_amount == 2.5

    def test_absent_post_entry_gives_zero_and_is_rejected(self, make_record):
        record = make_record(pre_token_balances=[token_balance(WSOL_MINT, OWNER, "10.0")])

        parsed = self._extractor().extract(record)

        assert parsed is not None
        assert parsed.raw_amount == 0.0
        assert parsed.owner == OWNER
        assert not AmountValidator(max_amount=10.0).is_acceptable(parsed.raw_amount)

    def test_absent_pre_entry_gives_zero(self, make_record):
        record = make_record(post_token_balances=[token_balance(WSOL_MINT, OWNER, "9.0")])

        parsed = self._extractor().extract(record)

        assert parsed.raw_amount == 0.0
        assert parsed.owner is None

    def test_post_entry_must_share_owner(self, make_record):
        record = make_record(
            pre_token_balances=[token_balance(WSOL_MINT, OWNER, "10.0")],
            post_token_balances=[token_balance(WSOL_MINT, FEE_PAYER, "4.0")],
        )

        assert self._extractor().extract(record).raw_amount == 0.0


class TestAmountValidator:
    """Tests for AmountValidator."""

    @pytest.mark.parametrize("amount", [1.0, 2.3, 0.1, 0.5, 7.0, 2.3000001, -1.5])
    def test_accepts_round_tenths(self, amount):
        assert AmountValidator().is_acceptable(amount)

    @pytest.mark.parametrize(
        "amount", [0, 0.0, 0.000005, 0.000001, -0.000005, 2.33, 1.05, 0.123456, math.nan, math.inf, -math.inf]
    )
    def test_rejects(self, amount):
        assert not AmountValidator().is_acceptable(amount)

    def test_magnitude_bound(self):
        validator = AmountValidator(max_amount=10.0)

        assert validator.is_acceptable(9.9)
        assert not validator.is_acceptable(10.0)
        assert not validator.is_acceptable(25.0)
        assert AmountValidator(max_amount=None).is_acceptable(25.0)

    def test_rejection_reasons(self):
        validator = AmountValidator(max_amount=10.0)

        assert validator.rejection_reason(0) == "zero"
        assert validator.rejection_reason(0.000005) == "zero"
        assert validator.rejection_reason(math.nan) == "not finite"
        assert validator.rejection_reason(12.0) == "at or above 10.0"
        assert validator.rejection_reason(2.33) == "not a round tenth"
        assert validator.rejection_reason(2.3) is None


class TestVolumeAggregator:
    """Tests for VolumeAggregator."""

    def test_record_returns_running_total(self):
        aggregator = VolumeAggregator()

        assert aggregator.record(1.0) == 1.0
        assert aggregator.record(2.5) == 3.5
        assert aggregator.snapshot().swaps_counted == 2

    def test_negative_amounts_add_absolute_value(self):
        aggregator = VolumeAggregator()
        aggregator.record(-1.5)

        assert aggregator.total == 1.5

    def test_total_never_decreases(self):
        aggregator = VolumeAggregator()
        previous = 0.0
        for amount in (0.5, -0.3, 2.0, -7.1, 0.1):
            total = aggregator.record(amount)
            assert total >= previous
            previous = total

    def test_order_does_not_matter(self):
        amounts = [0.5, 1.0, -2.0, 0.25, 3.0]
        totals = set()
        for order in itertools.permutations(amounts):
            aggregator = VolumeAggregator()
            for amount in order:
                aggregator.record(amount)
            totals.add(aggregator.total)

        assert totals == {6.75}
