from services.content_types import ContentItem, SourceKind
from services.search import category_name_matches, matches_search, normalize_search_term, relevance_score


def _item(**overrides):
    values = {
        "id": "item-1",
        "source_kind": SourceKind.TEMPLATE,
        "category": "Festival",
        "title": "Diwali Lights",
    }
    values.update(overrides)
    return ContentItem(**values)


def test_normalize_search_term_decodes_double_encoding_and_collapses_whitespace():
    assert normalize_search_term("good%2520morning") == "good morning"
    assert normalize_search_term("  happy    new   year ") == "happy new year"
    assert normalize_search_term("100%") == "100%"
    assert normalize_search_term("   ") is None
    assert normalize_search_term(None) is None


def test_category_name_matches_substring_words_and_squashed_forms():
    assert category_name_matches("motivational", "Motivational Quotes")
    assert category_name_matches("real estate agents", "Real Estate")
    assert category_name_matches("realestate", "Real Estate")
    assert not category_name_matches("bakery", "Real Estate")
    assert not category_name_matches("a b", "Restaurant")


def test_relevance_prefers_title_over_tags_and_description():
    term = "wedding"
    title_hit = _item(id="t", title="Wedding Invite")
    tag_hit = _item(id="g", title="Invite", tags=("wedding",))
    description_hit = _item(id="d", title="Invite", description="Perfect for a wedding")

    assert relevance_score(title_hit, term) > relevance_score(tag_hit, term) > relevance_score(description_hit, term) > 0


def test_business_image_matches_owning_category_name():
    image = _item(
        id="bci-12",
        source_kind=SourceKind.BUSINESS_CATEGORY_IMAGE,
        category="Motivational",
        title="Quote 12",
    )

    assert matches_search(image, "motivational")
    assert matches_search(image, "MOTIVATIONAL")
    assert not matches_search(image, "wedding")


def test_relaxed_category_match_only_applies_to_business_images():
    template = _item(category="Real Estate", title="Open House")

    assert not matches_search(template, "real estate agents")
    assert matches_search(
        _item(source_kind=SourceKind.BUSINESS_CATEGORY_IMAGE, category="Real Estate", title="Open House"),
        "real estate agents",
    )


def test_empty_term_matches_everything():
    assert matches_search(_item(), None)
    assert relevance_score(_item(), None) == 0
