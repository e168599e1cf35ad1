from whatsnew.ai.anchor_extractor import allowed_refs, extract_anchors, format_anchors_for_prompt
from whatsnew.utils.models import Anchors

RAW = (
    "Fixes #12 and #34. See https://github.com/o/r/pull/56 and commit a1b2c3d.\n"
    "Also #12 again. deadbeef has no digits and 1234567 has no letters."
)


class TestExtractAnchors:
    def test_refs_deduplicated_and_url_numbers_merged(self):
        assert extract_anchors(RAW).pr_refs == ("12", "34", "56")

    def test_sha_needs_letter_and_digit(self):
        assert extract_anchors(RAW).commit_shas == ("a1b2c3d",)

    def test_urls(self):
        assert extract_anchors(RAW).urls == ("https://github.com/o/r/pull/56",)

    def test_empty(self):
        assert extract_anchors("") == Anchors()


class TestFormatAnchors:
    def test_sha_list_capped(self):
        shas = tuple(f"abc{i}def" for i in range(7))
        text = format_anchors_for_prompt(Anchors(pr_refs=("1",), commit_shas=shas))
        assert "#1" in text
        assert "abc4def" in text
        assert "abc5def" not in text
        assert "(+2 more)" in text

    def test_no_suffix_at_five(self):
        shas = tuple(f"abc{i}def" for i in range(5))
        assert "more" not in format_anchors_for_prompt(Anchors(commit_shas=shas))

    def test_no_refs(self):
        assert "(none found)" in format_anchors_for_prompt(Anchors())


def test_allowed_refs():
    assert allowed_refs(extract_anchors(RAW)) == {"12", "34", "56", "a1b2c3d"}
