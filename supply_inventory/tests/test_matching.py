"""
Unit tests for free-text matching and quantity extraction.
"""
import unittest

from supply_inventory.core.common_terms import load_common_terms
from supply_inventory.core.matching import (
    MATCH_ALIAS, MATCH_COMMON_TERM, MATCH_FUZZY,
    SupplyCandidate, calculate_similarity, extract_quantity, match_item,
    rank_suggestions, split_mentions
)
from supply_inventory.exceptions import ConfigError

SUPPLIES = [
    SupplyCandidate(1, 'Domestos', 'ks'),
    SupplyCandidate(2, 'Kávové kapsle', 'ks'),
    SupplyCandidate(3, 'Toaletní papír', 'role'),
]


class TestExtractQuantity(unittest.TestCase):
    """Test cases for leading multiplier extraction."""

    def test_ascii_multiplier(self):
        self.assertEqual(extract_quantity('3x Domestos'), (3, 'Domestos'))

    def test_unicode_multiplier(self):
        self.assertEqual(extract_quantity('5× Kávové kapsle'), (5, 'Kávové kapsle'))

    def test_uppercase_and_spacing(self):
        self.assertEqual(extract_quantity('  10 X   Jar  '), (10, 'Jar'))

    def test_spaced_uppercase_multiplier_is_accepted(self):
        self.assertEqual(extract_quantity('3 X Jar'), (3, 'Jar'))
        self.assertEqual(extract_quantity('2 x Domestos'), (2, 'Domestos'))

    def test_no_multiplier_defaults_to_one(self):
        self.assertEqual(extract_quantity('  kapsle '), (1, 'kapsle'))

    def test_multiplier_must_lead(self):
        self.assertEqual(extract_quantity('Jar x3'), (1, 'Jar x3'))

    def test_multiplier_for_many_inputs(self):
        """Any "<n>x <name>" mention yields n and the trimmed name."""
        for qty in (1, 2, 7, 12, 150):
            for name in ('Domestos', 'toaletní papír', 'kapsle kafe'):
                with self.subTest(qty=qty, name=name):
                    self.assertEqual(extract_quantity(f'{qty}x {name} '), (qty, name))


class TestSplitMentions(unittest.TestCase):

    def test_split_on_commas_and_newlines(self):
        self.assertEqual(
            split_mentions('2x Domestos, kapsle\ntoaletak,, '),
            ['2x Domestos', 'kapsle', 'toaletak']
        )

    def test_empty_note(self):
        self.assertEqual(split_mentions(''), [])
        self.assertEqual(split_mentions(None), [])


class TestCalculateSimilarity(unittest.TestCase):
    """Test cases for normalized edit-distance similarity."""

    def test_identical_strings(self):
        self.assertEqual(calculate_similarity('domestos', 'domestos'), 1.0)

    def test_empty_strings(self):
        self.assertEqual(calculate_similarity('', ''), 1.0)
        self.assertEqual(calculate_similarity('abc', ''), 0.0)
        self.assertEqual(calculate_similarity('', 'abc'), 0.0)

    def test_classic_distance(self):
        # kitten -> sitting needs 3 edits over 7 characters
        self.assertAlmostEqual(calculate_similarity('kitten', 'sitting'), 1 - 3 / 7)


class TestMatchItem(unittest.TestCase):
    """Test cases for resolving a single mention."""

    def setUp(self):
        self.common_terms = load_common_terms(('cs',))

    def test_common_terms_resolve_all_sample_items(self):
        for text, supply_id in (('Domestos', 1), ('kapsle kafe', 2), ('toaletak', 3)):
            with self.subTest(text=text):
                item = match_item(text, SUPPLIES, {}, self.common_terms)
                self.assertEqual(item.supply_id, supply_id)
                self.assertEqual(item.qty, 1)
                self.assertEqual(item.match_source, MATCH_COMMON_TERM)
                self.assertGreaterEqual(item.confidence, 0.8)
                self.assertFalse(item.needs_mapping)

    def test_alias_match(self):
        item = match_item('Modrá lahev', SUPPLIES, {'modrá lahev': 1}, {})

        self.assertEqual(item.supply_id, 1)
        self.assertEqual(item.confidence, 0.8)
        self.assertEqual(item.match_source, MATCH_ALIAS)
        self.assertEqual(item.original_text, 'Modrá lahev')
        self.assertEqual(item.name, 'Domestos')

    def test_common_term_without_supply_falls_through_to_alias(self):
        item = match_item('jar', SUPPLIES, {'jar': 2}, self.common_terms)

        self.assertEqual(item.supply_id, 2)
        self.assertEqual(item.match_source, MATCH_ALIAS)

    def test_alias_to_missing_supply_falls_through(self):
        item = match_item('domestoss', SUPPLIES, {'domestoss': 99}, {})

        self.assertEqual(item.supply_id, 1)
        self.assertEqual(item.match_source, MATCH_FUZZY)

    def test_fuzzy_match(self):
        item = match_item('Domestoss', SUPPLIES, {}, {})

        self.assertEqual(item.supply_id, 1)
        self.assertEqual(item.match_source, MATCH_FUZZY)
        self.assertAlmostEqual(item.confidence, 1 - 1 / 9)

    def test_thresholds_are_applied_separately(self):
        # 'dome' vs 'domestos' scores exactly 0.5
        strict = match_item('dome', SUPPLIES, {}, {}, fuzzy_match_threshold=0.6, min_confidence=0.5)
        relaxed = match_item('dome', SUPPLIES, {}, {}, fuzzy_match_threshold=0.5, min_confidence=0.5)
        guarded = match_item('dome', SUPPLIES, {}, {}, fuzzy_match_threshold=0.5, min_confidence=0.6)

        self.assertTrue(strict.needs_mapping)
        self.assertEqual(relaxed.supply_id, 1)
        self.assertAlmostEqual(relaxed.confidence, 0.5)
        self.assertTrue(guarded.needs_mapping)

    def test_unmatched_item(self):
        item = match_item('xyz123', SUPPLIES, {}, self.common_terms, qty=4)

        self.assertTrue(item.needs_mapping)
        self.assertIsNone(item.supply_id)
        self.assertEqual(item.confidence, 0.0)
        self.assertEqual(item.qty, 4)
        self.assertEqual(item.name, 'xyz123')

    def test_blank_item(self):
        self.assertTrue(match_item('   ', SUPPLIES, {}, {}).needs_mapping)

    def test_empty_catalog(self):
        self.assertTrue(match_item('Domestos', [], {}, self.common_terms).needs_mapping)


class TestRankSuggestions(unittest.TestCase):

    def test_best_first_and_limited(self):
        suggestions = rank_suggestions('domestoz', SUPPLIES, limit=1, min_score=0.0)

        self.assertEqual(len(suggestions), 1)
        self.assertEqual(suggestions[0]['id'], 1)

    def test_min_score_filters(self):
        self.assertEqual(rank_suggestions('qqqq', SUPPLIES, min_score=0.3), [])


class TestCommonTerms(unittest.TestCase):

    def test_packaged_dictionary(self):
        terms = load_common_terms(('cs',))

        self.assertEqual(terms['toaletak'], 'Toaletní papír')
        self.assertEqual(terms['kapsle kafe'], 'Kávové kapsle')

    def test_dictionary_is_read_only(self):
        terms = load_common_terms(('cs',))

        with self.assertRaises(TypeError):
            terms['nové'] = 'Nový'

    def test_unknown_locale(self):
        with self.assertRaises(ConfigError):
            load_common_terms(('xx',))

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            load_common_terms(('cs',), '/nonexistent/common_terms.json')


if __name__ == '__main__':
    unittest.main()
