import unittest

from block_types import CANONICAL_BLOCK_TYPES, TYPE_TO_BLOCK_MAP, normalize_block_type
from serp_fields import clean_domain, extract_domain, normalize_entry, numeric_or_none


class TestBlockTypeNormalizer(unittest.TestCase):

    def test_known_types_map_to_canonical(self):
        """Provider aliases collapse onto one canonical block type."""
        self.assertEqual(normalize_block_type("paid"), "ads_top")
        self.assertEqual(normalize_block_type("paid_bottom"), "ads_bottom")
        self.assertEqual(normalize_block_type("answer_box"), "featured_snippet")
        self.assertEqual(normalize_block_type("knowledge_graph"), "knowledge_panel")
        self.assertEqual(normalize_block_type("discussions_and_forums"), "discussions")
        self.assertEqual(normalize_block_type("news"), "top_stories")

    def test_lookup_is_case_insensitive(self):
        self.assertEqual(normalize_block_type("AI_Overview"), "ai_overview")
        self.assertEqual(normalize_block_type("ORGANIC"), "organic")

    def test_ignored_and_unknown_types(self):
        """Explicitly ignored and unknown types both come back as None, never an error."""
        self.assertIsNone(normalize_block_type("jobs"))
        self.assertIsNone(normalize_block_type("google_flights"))
        self.assertIsNone(normalize_block_type("brand_new_widget"))
        self.assertIsNone(normalize_block_type(None))
        self.assertIsNone(normalize_block_type(42))
        self.assertIsNone(normalize_block_type(""))

    def test_mapping_targets_are_closed(self):
        self.assertEqual(len(CANONICAL_BLOCK_TYPES), 16)
        for target in TYPE_TO_BLOCK_MAP.values():
            if target is not None:
                self.assertIn(target, CANONICAL_BLOCK_TYPES)


class TestSerpFields(unittest.TestCase):

    def test_extract_domain_from_url(self):
        self.assertEqual(extract_domain("https://www.Example.com/path?q=1"), "example.com")
        self.assertEqual(extract_domain("http://blog.example.org:8080/x"), "blog.example.org")

    def test_extract_domain_fallback_for_bare_hosts(self):
        """Scheme-less strings fall back to the permissive host match."""
        self.assertEqual(extract_domain("example.com/path"), "example.com")
        self.assertEqual(extract_domain("www.site.org"), "site.org")

    def test_extract_domain_unresolvable(self):
        self.assertEqual(extract_domain(""), "")
        self.assertEqual(extract_domain("   "), "")
        self.assertEqual(extract_domain(None), "")
        self.assertEqual(extract_domain({"url": "x"}), "")

    def test_clean_domain(self):
        self.assertEqual(clean_domain("WWW.Forbes.com"), "forbes.com")
        self.assertEqual(clean_domain(None), "")

    def test_numeric_or_none_rejects_direction_strings(self):
        self.assertEqual(numeric_or_none(3), 3)
        self.assertEqual(numeric_or_none(2.0), 2)
        self.assertIsNone(numeric_or_none("left"))
        self.assertIsNone(numeric_or_none(True))
        self.assertIsNone(numeric_or_none(None))
        self.assertIsNone(numeric_or_none(float("nan")))
        self.assertIsNone(numeric_or_none(float("inf")))
        self.assertIsNone(numeric_or_none(float("-inf")))

    def test_numeric_or_none_truncates_fractions(self):
        self.assertEqual(numeric_or_none(2.7), 2)

    def test_normalize_reference_shape(self):
        entry = normalize_entry({"link": "https://www.d.com/a", "title": "A", "text": "cited",
                                 "source": "D", "order": 4, "position": 9}, "reference")
        self.assertEqual(entry["domain"], "d.com")
        self.assertEqual(entry["url"], "https://www.d.com/a")
        self.assertEqual(entry["text"], "cited")
        self.assertEqual(entry["source"], "D")
        self.assertEqual(entry["order"], 4)

    def test_normalize_reference_position_fallback(self):
        self.assertEqual(normalize_entry({"url": "https://d.com", "position": 2}, "reference")["order"], 2)
        self.assertIsNone(normalize_entry({"url": "https://d.com", "position": "right"}, "reference")["order"])

    def test_explicit_domain_wins_over_url(self):
        entry = normalize_entry({"domain": "WWW.Brand.com", "url": "https://cdn.other.net/x"}, "reference")
        self.assertEqual(entry["domain"], "brand.com")

    def test_normalize_listing_shape(self):
        entry = normalize_entry({"website": "https://shop.com/", "name": "The Shop"}, "listing")
        self.assertEqual(entry["domain"], "shop.com")
        self.assertEqual(entry["url"], "https://shop.com/")
        self.assertEqual(entry["title"], "The Shop")

    def test_normalize_non_dict(self):
        entry = normalize_entry("not a dict", "element")
        self.assertEqual(entry["domain"], "")
        self.assertEqual(entry["url"], "")
        self.assertIsNone(entry["order"])


if __name__ == '__main__':
    unittest.main()
