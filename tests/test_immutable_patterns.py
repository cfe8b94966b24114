#!/usr/bin/env python3
"""
Tests for immutable patterns in the ECC parameter records.

This module tests the frozen dataclass behavior, hashability and read-only
array accessors of the parameter records.

Classes tested:
    - EccParameters (frozen dataclass)
    - ManualWarpInit (frozen dataclass)
    - FeatureBasedInit (frozen dataclass)

Run with: python -m pytest tests/test_immutable_patterns.py -v
"""

from dataclasses import FrozenInstanceError

import numpy as np
import pytest

from ecc_alignment.ecc_parameters import EccParameters, FeatureBasedInit, ManualWarpInit, ecc_params
from ecc_alignment.exceptions import ParameterTypeError, ParameterValueError
from ecc_alignment.transform_model import InitMethod, TransformModel

# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def sample_params() -> EccParameters:
    """Create a fully-populated EccParameters instance for testing."""
    image_pts = np.array([[0.0, 10.0, 10.0, 0.0], [0.0, 0.0, 10.0, 10.0]])
    template_pts = image_pts + 1.5
    return ecc_params(
        3, 40, "homography", True, True,
        np.array([[1.0, 0.0, 2.0], [0.0, 1.0, -2.0], [0.0, 0.0, 1.0]]),
        image_pts, template_pts, "RANSAC",
    )


# ============================================================================
# EccParameters Tests
# ============================================================================


class TestEccParametersFrozen:
    """Test that EccParameters is truly frozen (immutable)."""

    def test_frozen_levels_raises_error(self, sample_params):
        """Attempting to modify levels raises FrozenInstanceError."""
        with pytest.raises(FrozenInstanceError):
            sample_params.levels = 5

    def test_frozen_transform_raises_error(self, sample_params):
        """Attempting to modify transform raises FrozenInstanceError."""
        with pytest.raises(FrozenInstanceError):
            sample_params.transform = TransformModel.AFFINE

    def test_frozen_feature_init_raises_error(self, sample_params):
        """Attempting to drop the feature extension raises FrozenInstanceError."""
        with pytest.raises(FrozenInstanceError):
            sample_params.feature_init = None

    def test_init_warp_is_read_only(self, sample_params):
        """The warp returned by init_warp cannot be written to."""
        with pytest.raises(ValueError):
            sample_params.init_warp[0, 2] = 100.0

    def test_default_init_warp_is_read_only(self):
        """Default warps are read-only as well."""
        params = ecc_params(1, 10, "affine", False, False)
        with pytest.raises(ValueError):
            params.init_warp[0, 0] = 2.0

    def test_point_sets_are_read_only(self, sample_params):
        """Point sets returned by the record cannot be written to."""
        with pytest.raises(ValueError):
            sample_params.image_points[0, 0] = 1.0
        with pytest.raises(ValueError):
            sample_params.template_points[0, 0] = 1.0


class TestEccParametersHashable:
    """Test equality and hashing of EccParameters."""

    def test_equal_inputs_give_equal_records(self, sample_params):
        """Building twice from the same inputs yields equal records."""
        again = EccParameters.from_dict(sample_params.to_dict())
        assert again == sample_params
        assert hash(again) == hash(sample_params)

    def test_usable_as_dict_key(self, sample_params):
        """Records can be used as dictionary keys and set members."""
        cache = {sample_params: "result"}
        assert cache[EccParameters.from_dict(sample_params.to_dict())] == "result"
        assert len({sample_params, sample_params}) == 1

    def test_different_warp_gives_different_record(self):
        """Records differing only in warp are not equal."""
        a = ecc_params(1, 10, "affine", True, False, np.eye(2, 3))
        b = ecc_params(1, 10, "affine", True, False, np.eye(2, 3) * 2.0)
        assert a != b

    def test_manual_identity_differs_from_default(self):
        """A supplied identity warp is distinguishable from the default."""
        manual = ecc_params(1, 10, "affine", True, False, np.eye(2, 3))
        default = ecc_params(1, 10, "affine", False, False)
        np.testing.assert_array_equal(manual.init_warp, default.init_warp)
        assert manual != default


# ============================================================================
# Extension Record Tests
# ============================================================================


class TestExtensionRecords:
    """Test the ManualWarpInit and FeatureBasedInit records."""

    def test_manual_warp_init_frozen(self):
        """ManualWarpInit cannot be modified."""
        record = ManualWarpInit.create(TransformModel.EUCLIDEAN, np.eye(2, 3))
        with pytest.raises(FrozenInstanceError):
            record.normalized = True

    def test_feature_init_frozen(self):
        """FeatureBasedInit cannot be modified."""
        record = FeatureBasedInit.create(np.ones((2, 3)), np.ones((2, 3)), InitMethod.LS)
        with pytest.raises(FrozenInstanceError):
            record.init_method = InitMethod.RANSAC

    def test_input_arrays_are_copied(self):
        """Mutating the caller's arrays afterwards does not affect the record."""
        pts = np.ones((2, 3))
        record = FeatureBasedInit.create(pts, pts.copy(), "LS")
        pts[0, 0] = 42.0
        assert record.image_points[0, 0] == 1.0

    def test_parse_consumes_fixed_slices(self):
        """Each parser reads exactly its own number of arguments."""
        assert ManualWarpInit.ARG_COUNT == 1
        assert FeatureBasedInit.ARG_COUNT == 3

        with pytest.raises(ValueError):
            FeatureBasedInit.parse([np.ones((2, 2)), np.ones((2, 2))])


# ============================================================================
# Direct Construction Validation Tests
# ============================================================================


class TestDirectConstructionValidation:
    """Records built through the dataclass constructor are validated too."""

    @pytest.mark.parametrize(
        "levels,iterations",
        [(0, 10), (1, -3), (0, -3)],
        ids=["zero-levels", "negative-iterations", "both-invalid"],
    )
    def test_non_positive_counts_rejected(self, levels, iterations):
        """levels and iterations must be at least 1."""
        with pytest.raises(ParameterValueError):
            EccParameters(levels=levels, iterations=iterations, transform=TransformModel.AFFINE)

    @pytest.mark.parametrize("levels", [2.0, "2", True, np.int64(2)])
    def test_non_int_levels_rejected(self, levels):
        """Stored counts must be plain ints."""
        with pytest.raises(ParameterTypeError, match="levels"):
            EccParameters(levels=levels, iterations=10, transform=TransformModel.AFFINE)

    def test_transform_name_string_rejected(self):
        """The constructor requires a TransformModel, not its name."""
        with pytest.raises(ParameterTypeError, match="transform"):
            EccParameters(levels=1, iterations=10, transform="affine")

    def test_wrong_extension_type_rejected(self):
        """Extension slots only accept their record types."""
        with pytest.raises(ParameterTypeError, match="feature_init"):
            EccParameters(
                levels=1, iterations=10, transform=TransformModel.AFFINE, feature_init=np.ones((2, 2))
            )

    def test_valid_direct_construction(self):
        """A well-formed record still builds and derives NoP."""
        params = EccParameters(levels=2, iterations=20, transform=TransformModel.HOMOGRAPHY)
        assert params.nop == 8

    def test_feature_init_point_count_mismatch_rejected(self):
        """Stored point bytes must agree with point_count."""
        data = np.ones((2, 3)).tobytes()
        with pytest.raises(ParameterValueError, match="image_points"):
            FeatureBasedInit(
                _image_points_data=data,
                _template_points_data=data,
                point_count=4,
                init_method=InitMethod.LS,
            )

    def test_feature_init_negative_count_rejected(self):
        """point_count cannot be negative."""
        with pytest.raises(ParameterValueError, match="point_count"):
            FeatureBasedInit(
                _image_points_data=b"",
                _template_points_data=b"",
                point_count=-1,
                init_method=InitMethod.LS,
            )

    def test_feature_init_method_string_rejected(self):
        """init_method must be an InitMethod member on direct construction."""
        data = np.ones((2, 2)).tobytes()
        with pytest.raises(ParameterTypeError, match="init_method"):
            FeatureBasedInit(
                _image_points_data=data,
                _template_points_data=data,
                point_count=2,
                init_method="LS",
            )

    def test_manual_warp_size_mismatch_rejected(self):
        """Stored warp bytes must match the transform's warp shape."""
        with pytest.raises(ParameterValueError, match="init_warp"):
            ManualWarpInit(transform=TransformModel.HOMOGRAPHY, _warp_data=np.eye(2, 3).tobytes())
