"""
Tests for the controlled category vocabulary.
"""
import pytest

from article_sync.core.taxonomy import (
    DEFAULT_TAG,
    VOCABULARY,
    CategoryGroup,
    ControlledVocabulary,
)


class TestVocabulary:
    """Tests for ControlledVocabulary."""

    def test_default_tag_is_member(self):
        assert DEFAULT_TAG in VOCABULARY.tags
        assert VOCABULARY.is_valid(DEFAULT_TAG)

    def test_tags_are_qualified(self):
        assert "Tech: Robotics" in VOCABULARY.tags
        assert "Robotics" not in VOCABULARY.tags
        assert all(": " in tag for tag in VOCABULARY.tags)

    def test_groups(self):
        assert [g.name for g in VOCABULARY.groups] == [
            "Tech", "Business", "Entrepreneurship", "General",
        ]

    def test_primary_category(self):
        assert VOCABULARY.primary_category(["Business: Economics", "Tech: Big Data"]) == "Business"
        assert VOCABULARY.primary_category([]) == "General"

    def test_prompt_listing_has_every_tag(self):
        lines = VOCABULARY.prompt_listing().splitlines()
        assert lines == list(VOCABULARY.tags)

    def test_default_must_be_in_vocabulary(self):
        with pytest.raises(ValueError):
            ControlledVocabulary(
                groups=(CategoryGroup(name="Tech", tags=("Robotics",)),),
            )
