"""Tests for merchant normalization and fuzzy grouping."""
import pytest

from spending_analytics.intelligence.merchant_grouper import MerchantGrouper, normalize_merchant
from spending_analytics.intelligence.stats import levenshtein, similarity


class TestNormalizeMerchant:

    @pytest.mark.parametrize("raw,expected", [
        ("NETFLIX.COM", "netflixcom"),
        ("  Spotify   Premium ", "spotify premium"),
        ("Grab_Food*1234", "grabfood1234"),
        ("7-Eleven #042", "7eleven 042"),
        ("Uber   *Trip", "uber trip"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_merchant(raw) == expected

    @pytest.mark.parametrize("raw", ["NETFLIX.COM", " a - b ", "Café  Nero!!", "___", "x\t\ty"])
    def test_idempotent(self, raw):
        once = normalize_merchant(raw)
        assert normalize_merchant(once) == once

    def test_punctuation_only_becomes_empty(self):
        assert normalize_merchant("*** ---") == ""


class TestSimilarity:

    def test_levenshtein(self):
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("", "abc") == 3

    def test_identical_and_empty(self):
        assert similarity("netflix", "netflix") == 1.0
        assert similarity("", "") == 1.0

    def test_normalized_by_longer_string(self):
        assert similarity("spotify", "spotifyy") == pytest.approx(1 - 1 / 8)
        assert 0 <= similarity("netflix", "spotify") < 0.5


class TestMerchantGrouper:

    def test_groups_name_variants(self, make_txn):
        transactions = [
            make_txn(10, "Spotify", "2026-07-01"),
            make_txn(10, "SPOTIFY", "2026-08-01"),
            make_txn(10, "Spotifyy", "2026-09-01"),
            make_txn(10, "spotify.", "2026-10-01"),
        ]
        clusters = MerchantGrouper().group(transactions)

        assert len(clusters) == 1
        assert clusters[0].key == "spotify"
        assert clusters[0].representative_name == "Spotify"
        assert len(clusters[0].transactions) == 4

    def test_small_clusters_are_dropped(self, make_txn):
        transactions = [make_txn(10, "Spotify", f"2026-0{m}-01") for m in range(7, 10)]
        assert MerchantGrouper().group(transactions) == []

    def test_distinct_merchants_stay_apart(self, make_txn):
        transactions = []
        for month in range(6, 10):
            transactions.append(make_txn(10, "Netflix", f"2026-0{month}-01"))
            transactions.append(make_txn(20, "Spotify", f"2026-0{month}-02"))
        clusters = MerchantGrouper().group(transactions)

        assert [c.key for c in clusters] == ["netflix", "spotify"]
        assert all(len(c.transactions) == 4 for c in clusters)

    def test_first_matching_cluster_wins(self, make_txn):
        """A name similar to two clusters joins the one created first."""
        grouper = MerchantGrouper(similarity_threshold=0.75, min_transactions=1)
        transactions = [
            make_txn(1, "abcd", "2026-10-01"),
            make_txn(1, "abcdxy", "2026-10-02"),  # 4/6 similar to abcd: own cluster
            make_txn(1, "abcdx", "2026-10-03"),   # 0.8 to abcd, 0.83 to abcdxy
        ]
        clusters = grouper.group(transactions)

        assert [c.key for c in clusters] == ["abcd", "abcdxy"]
        assert [t.merchant for t in clusters[0].transactions] == ["abcd", "abcdx"]

    def test_cluster_keeps_first_category(self, make_txn):
        transactions = [make_txn(10, "Gym", f"2026-0{m}-01", "Health") for m in range(6, 9)]
        transactions.append(make_txn(10, "GYM", "2026-09-01", "Other"))
        clusters = MerchantGrouper().group(transactions)

        assert clusters[0].category == "Health"
        assert clusters[0].amounts == [10, 10, 10, 10]

    def test_regrouping_output_is_stable(self, make_txn):
        transactions = []
        for month in range(6, 10):
            transactions.append(make_txn(10, "Netflix", f"2026-0{month}-01"))
            transactions.append(make_txn(20, "NETFLIX.", f"2026-0{month}-03"))
            transactions.append(make_txn(30, "Spotify", f"2026-0{month}-02"))
        grouper = MerchantGrouper()
        clusters = grouper.group(transactions)

        flattened = [t for c in clusters for t in c.transactions]
        regrouped = grouper.group(flattened)

        assert [(c.key, c.transactions) for c in regrouped] == [(c.key, c.transactions) for c in clusters]

    def test_empty(self):
        assert MerchantGrouper().group([]) == []
