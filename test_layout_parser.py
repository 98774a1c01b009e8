import unittest

from classifiers import SourceNamer
from layout_parser import extract_ai_overview_text, parse_serp_items


def ai_overview_item():
    """Two element-level citations of d.com plus an overview-level repeat of the first URL."""
    return {
        "type": "ai_overview",
        "rank_absolute": 1,
        "items": [
            {
                "text": "Element one text",
                "references": [
                    {"domain": "d.com", "url": "https://d.com/a", "title": "A",
                     "text": "cited a", "source": "D Source"},
                ],
            },
            {
                "text": "Element two",
                "references": [
                    {"url": "https://www.d.com/b", "title": "B", "position": "right"},
                ],
            },
        ],
        "references": [
            {"url": "https://d.com/a", "title": "A"},
        ],
    }


class TestLayoutParser(unittest.TestCase):

    def test_empty_response(self):
        """No accepted blocks: empty stack, organic start 1, all flags off."""
        parsed = parse_serp_items([], "empty keyword")
        self.assertEqual(parsed.layout_stack, [])
        self.assertEqual(parsed.organic_start_position, 1)
        self.assertEqual(parsed.organic_offset_count, 0)
        self.assertEqual(parsed.blocks, [])
        for flag in ("has_ai_overview", "has_featured_snippet", "has_local_pack",
                     "has_people_also_ask", "has_ads", "has_video_carousel"):
            self.assertFalse(getattr(parsed, flag), flag)

    def test_only_ignored_items_count_as_empty(self):
        parsed = parse_serp_items(
            [{"type": "jobs"}, {"type": "mystery_box"}, {"title": "no type"}, "garbage"], "kw")
        self.assertEqual(parsed.layout_stack, [])
        self.assertEqual(parsed.organic_start_position, 1)
        self.assertEqual(parsed.competitor_presences, [])

    def test_layout_stack_order(self):
        """ads_top, organic@2, people_also_ask -> positions 1, 2, 3."""
        items = [
            {"type": "paid", "rank_absolute": 1, "domain": "www.AdCo.com",
             "url": "https://www.adco.com/offer", "title": "Ad"},
            {"type": "organic", "rank_absolute": 2, "domain": "rank1.com",
             "url": "https://rank1.com/", "title": "Rank 1"},
            {"type": "people_also_ask", "rank_absolute": 3},
        ]
        parsed = parse_serp_items(items, "plumber")
        stack = [(e.block_type, e.position, e.result_count) for e in parsed.layout_stack]
        self.assertEqual(stack, [("ads_top", 1, 1), ("organic", 2, 1), ("people_also_ask", 3, 1)])
        self.assertEqual(parsed.organic_start_position, 2)
        self.assertEqual(parsed.organic_offset_count, 1)
        self.assertTrue(parsed.has_ads)
        self.assertTrue(parsed.has_people_also_ask)
        self.assertFalse(parsed.has_ai_overview)

        presences = [(p.domain, p.block_type, p.position) for p in parsed.competitor_presences]
        self.assertEqual(presences, [("adco.com", "ads_top", 1), ("rank1.com", "organic", 2)])

    def test_ignored_items_do_not_consume_indexes(self):
        items = [
            {"type": "jobs"},
            {"type": "organic", "domain": "a.com"},
            {"type": "recipes"},
            {"type": "organic", "rank_absolute": 7, "domain": "b.com"},
        ]
        parsed = parse_serp_items(items, "kw")
        self.assertEqual([b.block_index for b in parsed.blocks], [0, 1])
        # First organic has no rank: falls back to its block index + 1
        self.assertEqual(parsed.organic_start_position, 1)
        self.assertEqual(parsed.organic_offset_count, 0)

    def test_repeated_block_type_keeps_single_entry(self):
        """result_count stays at 1 for repeat occurrences."""
        items = [
            {"type": "organic", "rank_absolute": 1},
            {"type": "organic", "rank_absolute": 2},
            {"type": "ai_overview", "rank_absolute": 3},
        ]
        parsed = parse_serp_items(items, "kw")
        self.assertEqual(len(parsed.layout_stack), 2)
        self.assertEqual(parsed.layout_stack[0].result_count, 1)
        self.assertEqual(parsed.layout_stack[1].position, 3)
        self.assertEqual(len(parsed.blocks), 3)

    def test_no_organic_results(self):
        """Fully obscured: organic start is block count + 1."""
        items = [{"type": "paid"}, {"type": "ai_overview"}, {"type": "local_pack"}]
        parsed = parse_serp_items(items, "kw")
        self.assertEqual(parsed.organic_start_position, 4)
        self.assertEqual(parsed.organic_offset_count, 3)

    def test_parsing_is_pure(self):
        items = [ai_overview_item(), {"type": "organic", "rank_absolute": 2, "domain": "x.com"}]
        self.assertEqual(parse_serp_items(items, "kw"), parse_serp_items(items, "kw"))

    def test_ai_overview_presences_suppress_overview_duplicate(self):
        """Two element-level d.com citations stay; the overview-level repeat is dropped."""
        parsed = parse_serp_items([ai_overview_item()], "what is seo")
        d_presences = [p for p in parsed.competitor_presences
                       if p.domain == "d.com" and p.block_type == "ai_overview"]
        self.assertEqual(len(d_presences), 2)
        self.assertTrue(all(p.is_in_ai_overview for p in d_presences))
        self.assertTrue(all(p.position is None for p in d_presences))

    def test_ai_overview_citations(self):
        parsed = parse_serp_items([ai_overview_item()], "what is seo",
                                  source_namer=SourceNamer(override_file=None))
        refs = parsed.ai_overview_references
        self.assertEqual([r.url for r in refs], ["https://d.com/a", "https://www.d.com/b"])

        first, second = refs
        self.assertTrue(first.is_element_level)
        self.assertEqual(first.source_name, "D Source")
        self.assertEqual(first.cited_text, "cited a")
        self.assertEqual(first.reference_position, 1)
        self.assertEqual(first.ai_generated_context, "Element one text")

        # "right" is not a rank: position falls back to the local index
        self.assertEqual(second.reference_position, 1)
        self.assertEqual(second.domain, "d.com")
        self.assertEqual(second.source_name, "D")
        self.assertIsNone(second.cited_text)

    def test_overview_level_citation_fields(self):
        item = {
            "type": "ai_overview",
            "references": [
                {"url": "https://other.org/guide/x", "title": "X", "order": 4},
                {"url": "https://other.org/guide/x", "title": "X again"},
                {"url": "https://third.net/blog/y"},
            ],
        }
        refs = parse_serp_items([item], "kw").ai_overview_references
        self.assertEqual(len(refs), 2)
        self.assertEqual(refs[0].reference_position, 4)
        self.assertFalse(refs[0].is_element_level)
        self.assertIsNone(refs[0].ai_generated_context)
        self.assertEqual(refs[0].source_name, "Other")
        self.assertEqual(refs[0].content_type, "guide")
        self.assertEqual(refs[1].reference_position, 3)
        self.assertEqual(refs[1].content_type, "article")

    def test_element_level_citations_not_deduplicated(self):
        item = {
            "type": "ai_overview",
            "items": [
                {"text": "one", "references": [{"url": "https://same.com/p"}]},
                {"text": "two", "references": [{"url": "https://same.com/p"}]},
            ],
        }
        parsed = parse_serp_items([item], "kw")
        self.assertEqual(len(parsed.ai_overview_references), 2)
        self.assertEqual(len(parsed.competitor_presences), 2)

    def test_ai_context_is_capped(self):
        item = {
            "type": "ai_overview",
            "items": [{"text": "x" * 800, "references": [{"url": "https://d.com"}]}],
        }
        ref = parse_serp_items([item], "kw").ai_overview_references[0]
        self.assertEqual(len(ref.ai_generated_context), 500)

    def test_legacy_element_domain(self):
        """An element carrying its own url yields a presence unless the domain is already recorded."""
        item = {
            "type": "ai_overview",
            "items": [
                {"title": "Legacy", "url": "https://legacy.com/p"},
                {"title": "Dup", "url": "https://legacy.com/q"},
            ],
        }
        parsed = parse_serp_items([item], "kw")
        self.assertEqual([(p.domain, p.title) for p in parsed.competitor_presences],
                         [("legacy.com", "Legacy")])
        self.assertEqual(parsed.ai_overview_references, [])

    def test_featured_snippet_single_presence(self):
        items = [
            {"type": "featured_snippet", "rank_absolute": 1, "domain": "fs.com",
             "url": "https://fs.com/a", "description": "Snippet text"},
            {"type": "answer_box", "url": "https://www.fs.com/b"},
            {"type": "featured_snippet", "url": "https://other-fs.com/c"},
        ]
        parsed = parse_serp_items(items, "kw")
        fs = [(p.domain, p.is_in_featured_snippet) for p in parsed.competitor_presences]
        self.assertEqual(fs, [("fs.com", True), ("other-fs.com", True)])
        self.assertEqual(parsed.blocks[0].featured_snippet_text, "Snippet text")
        self.assertTrue(parsed.has_featured_snippet)

    def test_local_pack_listings(self):
        item = {
            "type": "local_pack",
            "rank_absolute": 2,
            "items": [
                {"title": "Shop A", "url": "https://shop-a.com"},
                {"name": "Shop B", "website": "https://www.shop-b.com/home"},
                {"title": "No site"},
            ],
        }
        parsed = parse_serp_items([item], "kw")
        presences = [(p.domain, p.title, p.position) for p in parsed.competitor_presences]
        self.assertEqual(presences, [("shop-a.com", "Shop A", None), ("shop-b.com", "Shop B", None)])
        self.assertTrue(parsed.has_local_pack)
        self.assertEqual([s.domain for s in parsed.blocks[0].items], ["shop-a.com", "", ""])

    def test_baseline_presence_uses_group_rank(self):
        items = [{"type": "video", "rank_group": 5, "domain": "youtube.com", "url": "https://youtube.com/w"}]
        parsed = parse_serp_items(items, "kw")
        presence = parsed.competitor_presences[0]
        self.assertEqual((presence.block_type, presence.position), ("video_carousel", 5))
        self.assertTrue(parsed.has_video_carousel)

    def test_non_finite_ranks_are_treated_as_missing(self):
        """NaN and Infinity (valid JSON tokens for json.loads) never break parsing."""
        items = [
            {"type": "paid", "rank_absolute": float("inf"), "rank_group": float("nan"),
             "domain": "ad.com"},
            {"type": "ai_overview", "references": [
                {"url": "https://d.com/a", "order": float("inf"), "position": float("nan")},
            ]},
            {"type": "organic", "rank_absolute": float("nan"), "domain": "a.com"},
        ]
        parsed = parse_serp_items(items, "kw")
        self.assertEqual(parsed.organic_start_position, 3)
        self.assertEqual(parsed.blocks[0].rank_absolute, 0)
        self.assertIsNone(parsed.competitor_presences[0].position)
        self.assertEqual(parsed.ai_overview_references[0].reference_position, 1)

    def test_extract_ai_overview_text(self):
        item = {
            "text": "Intro.",
            "items": [{"text": "First."}, {"snippet": "Second."}, {"title": "Third."}, "junk"],
        }
        self.assertEqual(extract_ai_overview_text(item), "Intro. First. Second. Third.")
        self.assertIsNone(extract_ai_overview_text({"items": []}))
        self.assertEqual(len(extract_ai_overview_text({"text": "y" * 3000})), 2000)


if __name__ == '__main__':
    unittest.main()
