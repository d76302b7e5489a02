"""Tests for similarity scoring and chain mixing."""

from conftest import make_token
from crosswap.utils.search import calculate_similarity, is_exact_match
from crosswap.utils.token_mixer import mix_tokens_by_chain, mix_tokens_with_priority


class TestSimilarity:
    """Tests for calculate_similarity."""

    def test_exact_match(self):
        assert calculate_similarity("usdt", "USDT") == 1.0

    def test_substring_match(self):
        assert calculate_similarity("twc", "TWCX") == 0.8
        assert calculate_similarity("tether", "Tether USD") == 0.8

    def test_partial_overlap_is_lower(self):
        score = calculate_similarity("pepe", "PEPPER COIN")
        assert 0.0 < score < 0.8

    def test_no_overlap(self):
        assert calculate_similarity("xyz", "abc") == 0.0

    def test_empty_inputs(self):
        assert calculate_similarity("", "abc") == 0.0
        assert calculate_similarity("abc", "") == 0.0

    def test_is_exact_match(self):
        assert is_exact_match("twc", "TWC", "Twitter Coin")
        assert not is_exact_match("twc", "TWCX", "TWCX Token")
        assert is_exact_match("0xabc", "SYM", "", "0xABC")


class TestMixByChain:
    """Tests for plain round-robin mixing."""

    def test_round_robin(self):
        tokens = [make_token(f"A{i}", 1) for i in range(3)] + [make_token("B0", 56)]
        mixed = mix_tokens_by_chain(tokens, 10)

        assert [t.symbol for t in mixed] == ["A0", "B0", "A1", "A2"]

    def test_limit(self):
        tokens = [make_token(f"A{i}", 1) for i in range(5)]
        assert len(mix_tokens_by_chain(tokens, 2)) == 2

    def test_empty(self):
        assert mix_tokens_by_chain([], 10) == []


class TestMixWithPriority:
    """Tests for capped mixing with a priority chain."""

    def test_caps_per_chain(self):
        """Ordinary chains contribute at most per_chain_cap tokens."""
        tokens = [make_token(f"E{i}", 1) for i in range(10)] + [
            make_token(f"P{i}", 137) for i in range(10)
        ]
        mixed = mix_tokens_with_priority(tokens, 30, 56, per_chain_cap=3, priority_chain_cap=6)

        assert len([t for t in mixed if t.chain_id == 1]) == 3
        assert len([t for t in mixed if t.chain_id == 137]) == 3

    def test_priority_chain_gets_larger_cap_and_leads(self):
        tokens = [make_token(f"E{i}", 1) for i in range(10)] + [
            make_token(f"B{i}", 56) for i in range(10)
        ]
        mixed = mix_tokens_with_priority(tokens, 30, 56, per_chain_cap=3, priority_chain_cap=6)

        assert mixed[0].chain_id == 56
        assert len([t for t in mixed if t.chain_id == 56]) == 6
        assert len(mixed) == 9

    def test_limit_applies_after_caps(self):
        tokens = [make_token(f"C{i}", c) for c in (1, 56, 137, 10) for i in range(5)]
        mixed = mix_tokens_with_priority(tokens, 5, 56, per_chain_cap=3, priority_chain_cap=6)

        assert len(mixed) == 5
        assert {t.chain_id for t in mixed} == {1, 56, 137, 10}

    def test_keeps_order_within_chain(self):
        tokens = [make_token(f"E{i}", 1) for i in range(3)]
        mixed = mix_tokens_with_priority(tokens, 10, None, per_chain_cap=2, priority_chain_cap=6)

        assert [t.symbol for t in mixed] == ["E0", "E1"]
