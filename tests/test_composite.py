"""
Tests for composite-key indexes over entities and aspects.
"""

from unittest.mock import patch

import numpy as np
import pytest

from vecindex.vector import (
    CompositeKeyIndex,
    DeterministicHashEmbedding,
    IndexStateError,
    KeySplitter,
    aspect_index,
    build_canonical_aspect_index,
    entity_index,
)
from vecindex.vector.aspects import DEFAULT_HEADING_ALIASES, MEDQUAD_ASPECTS, get_aspect_assignments
from vecindex.vector.composite import ENTITY_SEPARATOR, HEADING_SEPARATOR
from vecindex.vector.table import unit_vector


class TestKeySplitter:
    """Tests for splitting composite keys."""

    def test_literal_separator(self):
        splitter = KeySplitter(ENTITY_SEPARATOR)

        assert splitter.split("Heart;Lung") == ["Heart", "Lung"]
        assert splitter.split("Heart;;Lung;") == ["Heart", "Lung"]
        assert splitter.split("Heart") == ["Heart"]
        assert splitter.split("") == []

    def test_heading_separator(self):
        splitter = KeySplitter(HEADING_SEPARATOR, regex=True, strip=True)

        assert splitter.split("Signs and Symptoms | Diagnosis") == ["Signs", "Symptoms", "Diagnosis"]
        assert splitter.split("Causes/Prevention") == ["Causes", "Prevention"]
        assert splitter.split("Risk & Prevention") == ["Risk", "Prevention"]
        # "and" inside a word is no separator
        assert splitter.split("Landmarks") == ["Landmarks"]

    def test_empty_separator(self):
        with pytest.raises(ValueError):
            KeySplitter("")


@pytest.fixture
def entities(encoder):
    """Entity index with five keys: Heart, Lung, Skin, Bone_fracture, Rash."""
    index = entity_index(encoder)
    index.build_from_labels(["Heart;Lung", "Skin", "Bone_fracture", "Rash", "Heart"])
    return index


class TestEntityIndex:
    """Tests for the entity index built from labels."""

    def test_keys_and_frequencies(self, entities):
        assert isinstance(entities, CompositeKeyIndex)
        assert entities.id == "ENT"
        assert entities.keys() == ["Heart", "Lung", "Skin", "Bone_fracture", "Rash"]
        assert entities.frequency("Heart") == 2.0
        assert entities.size() == 5

    def test_underscores_are_encoded_as_spaces(self, entities):
        np.testing.assert_allclose(entities.lookup("Bone_fracture"), [0.0, 0.0, 0.0, 1.0], rtol=1e-6)

    def test_lookup_averages_parts(self, entities):
        """Test that composite lookups return the plain mean of the part vectors."""
        np.testing.assert_allclose(entities.lookup("Heart;Lung"), [0.5, 0.5, 0.0, 0.0], rtol=1e-6)
        np.testing.assert_allclose(entities.lookup("Heart;Unknown"), [1.0, 0.0, 0.0, 0.0], rtol=1e-6)

    def test_lookup_unknown(self, entities):
        assert entities.lookup("Unknown") is None
        assert entities.lookup(None) is None

    def test_lookup_encode_missing(self, entities):
        np.testing.assert_allclose(entities.lookup("Cardiac", encode_missing=True), [1.0, 0.0, 0.0, 0.0], rtol=1e-6)

    def test_lookup_normalizes_urls(self, entities):
        np.testing.assert_allclose(entities.lookup("https://en.wikipedia.org/wiki/Bone%20fracture"),
                                   [0.0, 0.0, 0.0, 1.0], rtol=1e-6)

    def test_encode_averages_parts(self, entities):
        np.testing.assert_allclose(entities.encode("Heart;Lung"), [0.5, 0.5, 0.0, 0.0], rtol=1e-6)
        np.testing.assert_allclose(entities.embed_text("Skin"), [0.0, 0.0, 1.0, 0.0], rtol=1e-6)

    def test_decode_is_multi_hot(self, entities):
        """Test that a composite key decodes to ones at exactly its known parts."""
        result = entities.decode("Heart;Lung")

        assert result.shape == (5,)
        assert result.sum() == 2.0
        assert result[entities.index("Heart")] == 1.0
        assert result[entities.index("Lung")] == 1.0

    def test_decode_fallback_is_one_hot(self, entities):
        with patch("vecindex.vector.index.logger") as mock_logger:
            result = entities.decode("Cardiac_arrest")

        assert result.sum() == 1.0
        assert result[entities.index("Heart")] == 1.0
        mock_logger.log_degraded_match.assert_called_once()

    def test_find_delegates_to_base(self, entities):
        assert entities.find_key([0.0, 1.0, 0.0, 0.0]) == "Lung"
        assert entities.similarity([0.0, 1.0, 0.0, 0.0]).shape == (5,)

    def test_decode_before_vectors(self, encoder):
        index = entity_index(encoder)
        index.base.build_keys(["Heart"])

        with pytest.raises(IndexStateError):
            index.decode("Heart")


class TestBuildFromPairs:
    """Tests for building an entity index from (id, text) pairs."""

    def test_source_index_is_looked_up_first(self, encoder, organ_index):
        index = entity_index(encoder)
        with patch("vecindex.vector.composite.logger") as mock_logger:
            index.build_from_pairs([("heart;Skin_disease", "skin rash"), (None, "no id"), ("", "empty id")],
                                   source=organ_index)

        assert index.keys() == ["heart", "Skin_disease"]
        np.testing.assert_allclose(index.lookup("heart"), [1.0, 0.0, 0.0, 0.0], rtol=1e-6)
        np.testing.assert_allclose(index.lookup("Skin_disease"), [0.0, 0.0, 1.0, 0.0], rtol=1e-6)
        assert mock_logger.warning.call_count == 2

    def test_without_source_text_is_encoded(self, encoder):
        index = entity_index(encoder)
        index.build_from_pairs([("A;B", "lung breathing"), ("C", "bone")])

        np.testing.assert_allclose(index.lookup("A"), [0.0, 1.0, 0.0, 0.0], rtol=1e-6)
        np.testing.assert_allclose(index.lookup("B"), [0.0, 1.0, 0.0, 0.0], rtol=1e-6)
        np.testing.assert_allclose(index.lookup("C"), [0.0, 0.0, 0.0, 1.0], rtol=1e-6)


class TestAspectIndex:
    """Tests for the aspect index over section headings."""

    def test_build_from_sentences(self, encoder):
        """Test that every heading part gets the mean of its sentence encodings."""
        aspects = aspect_index(encoder)
        aspects.build_from_sentences([
            ("Symptoms", "a rash on the skin"),
            ("Symptoms", "breathing problems"),
            ("Diagnosis | Treatment", "bone fracture"),
        ])

        assert aspects.id == "ASP"
        assert aspects.keys() == ["symptoms", "diagnosis", "treatment"]
        assert aspects.frequency("symptoms") == 2.0
        np.testing.assert_allclose(aspects.lookup("Symptoms"), unit_vector([0.0, 0.5, 1.0, 0.0]), rtol=1e-6)
        np.testing.assert_allclose(aspects.lookup("diagnosis"), [0.0, 0.0, 0.0, 1.0], rtol=1e-6)

    def test_heading_lookup_splits_parts(self, encoder):
        aspects = aspect_index(encoder)
        aspects.build_from_sentences([("Heart", "heart"), ("Lung", "lung")])

        np.testing.assert_allclose(aspects.lookup("Heart and Lung"), [0.5, 0.5, 0.0, 0.0], rtol=1e-6)
        assert aspects.decode("Heart & Lung").sum() == 2.0

    def test_aliases(self):
        encoder = DeterministicHashEmbedding(dimension=16)
        aspects = aspect_index(encoder, DEFAULT_HEADING_ALIASES)
        aspects.build_from_labels(["Abstract", "Treatment"])

        assert aspects.keys() == ["description", "treatment"]
        assert aspects.parts("Abstract") == ["Description"]
        np.testing.assert_allclose(aspects.lookup("Abstract"), aspects.lookup("Description"))

    def test_canonical_aspect_index(self):
        """Test that every canonical aspect is encoded from its representative heading."""
        encoder = DeterministicHashEmbedding(dimension=16)
        aspects = build_canonical_aspect_index(encoder, get_aspect_assignments("MedQuAD"))

        assert aspects.size() == len(MEDQUAD_ASPECTS)
        assert aspects.keys() == list(MEDQUAD_ASPECTS.keys())
        np.testing.assert_allclose(aspects.base.lookup("exams_and_tests"),
                                   unit_vector(encoder.embed_text("diagnosis")), rtol=1e-5)
        assert aspects.find_key(encoder.embed_text("prognosis")) == "outlook"

    def test_unknown_dataset(self):
        with pytest.raises(ValueError):
            get_aspect_assignments("PubMed")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
