from whatsnew.parsers.categorizer.categorize import categorize_items, order_categories
from whatsnew.parsers.categorizer.inference import extract_conventional_commit_type, infer_item_category
from whatsnew.parsers.categorizer.keywords import analyze_keywords
from whatsnew.parsers.categorizer.signals import map_section_to_category, normalize_section_name
from whatsnew.parsers.extractors.conventional_commits import parse_conventional_line
from whatsnew.utils.models import CATEGORY_ORDER, Category, ExtractedItem, SourceHint


def _hinted(text, section, suggested):
    return ExtractedItem(text=text, source_hint=SourceHint(section=section, suggested_category=suggested))


class TestInferItemCategory:
    def test_conventional_feat_is_feature_with_high_confidence(self):
        result = infer_item_category(parse_conventional_line("feat(api): add endpoint"))
        assert result.category == "features"
        assert result.confidence == "high"
        assert result.reason == "conventional_commit"

    def test_breaking_flag_wins(self):
        item = ExtractedItem(text="feat: add thing", conventional_type="feat", breaking=True)
        result = infer_item_category(item)
        assert (result.category, result.confidence, result.reason) == ("breaking", "high", "breaking_flag")

    def test_type_rederived_from_text(self):
        assert infer_item_category(ExtractedItem(text="[abc](https://x) fix: handle null")).category == "fixes"
        assert infer_item_category(ExtractedItem(text="Merged fix: retry on 502")).category == "fixes"

    def test_style_and_test_types_map_to_other(self):
        assert infer_item_category(ExtractedItem(text="test: cover parser")).category == "other"

    def test_section_hint_outranks_keywords(self):
        result = infer_item_category(_hinted("Add caching layer", "Performance", "perf"))
        assert (result.category, result.confidence, result.reason) == ("perf", "medium", "section_hint")

    def test_keyword_match(self):
        result = infer_item_category(ExtractedItem(text="Better performance when rendering tables"))
        assert (result.category, result.confidence, result.reason) == ("perf", "medium", "keyword_match")

    def test_other_hint_is_only_a_fallback(self):
        result = infer_item_category(_hinted("Miscellaneous tweaks here", "Changes", "other"))
        assert (result.category, result.confidence, result.reason) == ("other", "low", "source_hint_fallback")

    def test_no_signal(self):
        result = infer_item_category(ExtractedItem(text="Miscellaneous tweaks here"))
        assert (result.category, result.reason) == ("other", "no_signal")


class TestSignals:
    def test_normalize_section_name(self):
        assert normalize_section_name("🚀 Features:") == "features"
        assert normalize_section_name("  Bug Fixes  ") == "bug fixes"

    def test_map_section(self):
        assert map_section_to_category("✨ New Features") == "features"
        assert map_section_to_category("Bug fixes & small improvements") == "fixes"
        assert map_section_to_category("Random Stuff") == "other"
        assert map_section_to_category("") == "other"

    def test_conventional_type_helper(self):
        assert extract_conventional_commit_type("docs(readme): typo") == "docs"
        assert extract_conventional_commit_type("note: unrelated") is None

    def test_keywords_tie_goes_to_higher_priority(self):
        # one hit each for "fix" and "add"; features precedes fixes
        category, score = analyze_keywords("we add a fix")
        assert category == "features"
        assert score == 1


class TestCategorizeItems:
    ITEMS = [
        ExtractedItem(text="Update docs for config", conventional_type="docs"),
        ExtractedItem(text="drop node 14", conventional_type="feat", breaking=True),
        ExtractedItem(text="add export", conventional_type="feat", scope="cli"),
        ExtractedItem(text="handle empty input", conventional_type="fix", refs=("7",)),
        _hinted("Patch CVE-2024-1234 in parser", "Security", "security"),
    ]

    def test_output_in_display_order(self):
        ids = [c.id for c in categorize_items(self.ITEMS)]
        assert ids == [cid for cid in CATEGORY_ORDER if cid in ids]
        assert ids == ["breaking", "security", "features", "fixes", "docs"]

    def test_deterministic(self):
        assert categorize_items(self.ITEMS) == categorize_items(list(self.ITEMS))

    def test_parsing_hints_dropped_and_fields_kept(self):
        cats = {c.id: c for c in categorize_items(self.ITEMS)}
        assert cats["security"].items[0].source_hint is None
        assert cats["features"].items[0].scope == "cli"
        assert cats["fixes"].items[0].refs == ("7",)
        assert cats["breaking"].items[0].breaking is True
        assert cats["breaking"].title == "Breaking Changes"

    def test_order_categories_drops_empty(self):
        cats = [
            Category(id="other", title="Other", items=(ExtractedItem(text="x"),)),
            Category(id="fixes", title="Fixes", items=()),
            Category(id="breaking", title="Breaking", items=(ExtractedItem(text="y"),)),
        ]
        assert [c.id for c in order_categories(cats)] == ["breaking", "other"]
