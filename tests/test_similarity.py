"""Tests for weighted similarity scoring."""

import pytest

from cloth_identity.config import IdentityConfig
from cloth_identity.errors import GeometryError, MissingFeatureError
from cloth_identity.similarity import (
    SimilarityResult, compare, dimension_similarity, rank_results,
)


def _result(total, texture_sim=0.5):
    return SimilarityResult(texture_sim=texture_sim, pattern_sim=0.5,
                            dimension_sim=0.5, total=total, authentic=total >= 0.8)


class TestCompare:
    """Tests for the full reference-vs-candidate comparison."""

    def test_reflexive(self, make_descriptors):
        descriptors = make_descriptors()
        result = compare(descriptors, descriptors)
        assert result.texture_sim == pytest.approx(1.0)
        assert result.pattern_sim == pytest.approx(1.0)
        assert result.dimension_sim == pytest.approx(1.0)
        assert result.total == pytest.approx(1.0)
        assert result.authentic is True

    def test_texture_agreement_ignores_std(self, make_descriptors):
        reference = make_descriptors(texture={"mean_intensity": 128.0, "contrast": 0.5,
                                              "homogeneity": 0.8, "std_deviation": 10.0})
        candidate = make_descriptors(texture={"mean_intensity": 128.0, "contrast": 0.5,
                                              "homogeneity": 0.8, "std_deviation": 30.0})
        assert compare(reference, candidate).texture_sim == 1.0

    def test_contrast_shift(self, make_descriptors):
        reference = make_descriptors()
        texture = dict(reference.texture, contrast=0.53)
        result = compare(reference, make_descriptors(texture=texture))
        assert result.texture_sim == pytest.approx(0.99)
        assert result.total == pytest.approx(0.4 * 0.99 + 0.4 + 0.2)

    def test_off_grid_contrast_shift_is_linear(self, make_descriptors):
        reference = make_descriptors()
        delta = 0.00003
        texture = dict(reference.texture, contrast=reference.texture["contrast"] + delta)
        base = compare(reference, reference)
        shifted = compare(reference, make_descriptors(texture=texture))
        assert base.texture_sim - shifted.texture_sim == pytest.approx(delta / 3)

    def test_texture_and_pattern_symmetric(self, make_descriptors):
        a = make_descriptors()
        b = make_descriptors(
            texture={"mean_intensity": 100.0, "std_deviation": 12.0,
                     "contrast": 0.7, "homogeneity": 0.6},
            pattern={"complexity_score": 9.0, "symmetry_score": 60.0},
        )
        ab, ba = compare(a, b), compare(b, a)
        assert ab.texture_sim == pytest.approx(ba.texture_sim)
        assert ab.pattern_sim == pytest.approx(ba.pattern_sim)

    def test_dimension_relative_to_reference_area(self, make_descriptors):
        small = make_descriptors()
        large = make_descriptors(dimensions={"width": 200.0, "height": 200.0,
                                             "aspect_ratio": 0.5, "area": 40000.0})
        assert compare(small, large).dimension_sim == pytest.approx(0.5)
        assert compare(large, small).dimension_sim == pytest.approx(0.75)

    def test_weights_and_threshold(self, make_descriptors):
        reference = make_descriptors()
        candidate = make_descriptors(
            pattern={"complexity_score": 5.25, "symmetry_score": 57.123449}
        )
        result = compare(reference, candidate)
        assert result.pattern_sim == pytest.approx(0.8)
        assert result.total == pytest.approx(0.92)
        assert result.authentic is True

        strict = IdentityConfig(authenticity_threshold=0.95)
        assert compare(reference, candidate, strict).authentic is False

    def test_category_clamped_at_zero(self, make_descriptors):
        reference = make_descriptors()
        candidate = make_descriptors(
            texture={"mean_intensity": 255.0 + 128.123456, "std_deviation": 10.0,
                     "contrast": 5.5, "homogeneity": 5.8}
        )
        assert compare(reference, candidate).texture_sim == 0.0

    def test_accepts_stored_dict_form(self, make_descriptors):
        descriptors = make_descriptors()
        result = compare(descriptors.to_dict(), descriptors)
        assert result.total == pytest.approx(1.0)

    def test_missing_key_raises(self, make_descriptors):
        reference = make_descriptors()
        texture = {"mean_intensity": 1.0, "std_deviation": 1.0, "contrast": 0.1}
        with pytest.raises(MissingFeatureError, match="homogeneity"):
            compare(reference, make_descriptors(texture=texture))

    def test_missing_category_raises(self, make_descriptors):
        with pytest.raises(MissingFeatureError):
            compare(make_descriptors(pattern={}), make_descriptors())

    def test_zero_reference_area_raises(self, make_descriptors):
        reference = make_descriptors(dimensions={"width": 0.0, "height": 1.0,
                                                 "aspect_ratio": 0.0, "area": 0.0})
        with pytest.raises(GeometryError):
            compare(reference, make_descriptors())

    def test_result_to_dict(self, make_descriptors):
        descriptors = make_descriptors()
        data = compare(descriptors, descriptors).to_dict()
        assert set(data) == {"texture_sim", "pattern_sim", "dimension_sim",
                             "total", "authentic"}


class TestDimensionSimilarity:

    def test_identical(self):
        dims = {"aspect_ratio": 0.5, "area": 20000.0}
        assert dimension_similarity(dims, dims) == 1.0


class TestRankResults:
    """Tests for ordering identification hits."""

    def test_sorted_by_total_desc(self):
        ranked = rank_results([("A", _result(0.5)), ("B", _result(0.9)), ("C", _result(0.7))])
        assert [item_id for item_id, _ in ranked] == ["B", "C", "A"]

    def test_texture_breaks_ties(self):
        ranked = rank_results([("A", _result(0.9, 0.4)), ("B", _result(0.9, 0.8))])
        assert ranked[0][0] == "B"

    def test_id_breaks_full_ties(self):
        ranked = rank_results([("B", _result(0.9)), ("A", _result(0.9))])
        assert [item_id for item_id, _ in ranked] == ["A", "B"]
