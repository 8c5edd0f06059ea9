"""
Concept Extraction Tests

Pure-function tests: no database, no network.
"""

import pytest

from marginalia.services.concepts import (
    MAX_CONCEPTS,
    ConceptExtractor,
    extract_concepts,
    note_text,
    shared_concepts,
)


class TestLatinTerms:
    def test_empty_text(self):
        assert extract_concepts("") == []

    def test_simple_sentence_keeps_text_order(self):
        assert extract_concepts("The debt cycle repeats") == ["debt", "cycle", "repeats"]

    def test_filters_short_numeric_and_stopwords(self):
        assert extract_concepts("It is 2024 and AI rules") == ["rules"]

    def test_unicode_dashes_split_terms(self):
        assert extract_concepts("long–term") == ["long", "term"]

    def test_punctuation_is_stripped(self):
        assert extract_concepts("Debt! Debt? (cycle)") == ["debt", "cycle"]

    def test_repeated_terms_rank_higher(self):
        assert extract_concepts("cycle debt debt") == ["debt", "cycle"]

    def test_longer_term_absorbs_fragment(self):
        assert extract_concepts("debtor debtor debt") == ["debtor"]


class TestIdeographicPhrases:
    def test_single_bigram(self):
        assert extract_concepts("复利") == ["复利"]

    def test_longest_phrase_absorbs_its_fragments(self):
        assert extract_concepts("复利效应") == ["复利效应"]

    def test_edge_function_char_rejected(self):
        assert extract_concepts("的经济") == ["经济"]

    def test_function_char_allowed_inside_phrase(self):
        assert extract_concepts("经济的周期") == ["经济的周期"]

    def test_repeated_character_rejected(self):
        assert extract_concepts("哈哈哈哈") == []

    def test_stop_characters_rejected(self):
        assert extract_concepts("我们") == []

    def test_stop_phrase_rejected(self):
        assert extract_concepts("非常") == []

    def test_non_ideographs_are_dropped_before_scanning(self):
        # Punctuation between sentences does not split the run
        assert extract_concepts("复利。效应") == extract_concepts("复利效应")


class TestRanking:
    def test_mixed_scripts(self):
        assert extract_concepts("Debt 债务危机") == ["debt", "债务危机"]

    def test_capped_at_max_concepts(self):
        text = " ".join(f"alpha{i}" for i in range(50))
        concepts = extract_concepts(text)
        assert len(concepts) == MAX_CONCEPTS
        assert concepts[0] == "alpha0"
        assert concepts[-1] == f"alpha{MAX_CONCEPTS - 1}"

    def test_deterministic(self):
        text = "Credit growth 信贷增长 outpaces income 收入增长"
        assert extract_concepts(text) == extract_concepts(text)

    def test_no_kept_concept_contains_a_later_one(self):
        concepts = extract_concepts("长期投资需要耐心，复利才会显现。长期投资 patience")
        for i, later in enumerate(concepts):
            for earlier in concepts[:i]:
                assert not (len(earlier) >= len(later) and later in earlier)


class TestExtractorConfig:
    def test_custom_stopwords(self):
        extractor = ConceptExtractor(stopwords={"debt"})
        assert extractor.extract("the debt cycle") == ["the", "cycle"]

    def test_custom_limit(self):
        extractor = ConceptExtractor(max_concepts=2)
        assert extractor.extract("alpha beta gamma") == ["alpha", "beta"]

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            ConceptExtractor(max_concepts=0)


def test_shared_concepts_keeps_other_order():
    assert shared_concepts(["debt", "cycle"], ["cycle", "growth", "debt"]) == [
        "cycle",
        "debt",
    ]


def test_shared_concepts_capped():
    concepts = [f"term{i}" for i in range(10)]
    assert shared_concepts(concepts, concepts) == concepts[:6]


def test_note_text_joins_quote():
    assert note_text("body", None) == "body"
    assert note_text("body", "quoted") == "body\nquoted"
