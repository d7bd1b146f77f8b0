import pytest
import numpy as np
import uvitdrp.mocks as mocks
from uvitdrp.detector import rotate_to_uv_frame, get_detector_name

np.random.seed(456)

vis_x = np.random.uniform(-20, 20, size=200)
vis_y = np.random.uniform(-20, 20, size=200)


def test_fuv_flips_y():
    """
    FUV offsets are the visible offsets with the y axis flipped
    """
    x_uv, y_uv = rotate_to_uv_frame((vis_x, vis_y), "FUV")

    assert np.array_equal(x_uv, vis_x)
    assert np.array_equal(y_uv, -vis_y)


def test_nuv_rotation():
    """
    NUV offsets are rotated by +35 degrees, which preserves their length
    """
    x_uv, y_uv = rotate_to_uv_frame((vis_x, vis_y), "NUV")

    ang = np.radians(35.)
    assert x_uv == pytest.approx(vis_x * np.cos(ang) - vis_y * np.sin(ang))
    assert y_uv == pytest.approx(vis_x * np.sin(ang) + vis_y * np.cos(ang))
    assert x_uv**2 + y_uv**2 == pytest.approx(vis_x**2 + vis_y**2)

    # a pure x offset ends up at +35 degrees
    x_uv, y_uv = rotate_to_uv_frame((np.array([1.]), np.array([0.])), "NUV")
    assert np.degrees(np.arctan2(y_uv[0], x_uv[0])) == pytest.approx(35.)


@pytest.mark.parametrize("detector", ["VIS", "", None, "XUV", "nuvx"])
def test_unknown_detector_is_zero(detector):
    """
    Any detector that is not FUV or NUV gets all-zero offsets of the same length
    """
    x_uv, y_uv = rotate_to_uv_frame((vis_x, vis_y), detector)

    assert len(x_uv) == len(vis_x)
    assert len(y_uv) == len(vis_y)
    assert np.all(x_uv == 0)
    assert np.all(y_uv == 0)


def test_detector_name_normalized():
    """
    Header values are matched regardless of case and padding
    """
    assert get_detector_name(" nuv ") == "NUV"
    assert get_detector_name(None) == ""

    x_uv, y_uv = rotate_to_uv_frame((vis_x, vis_y), "fuv  ")
    assert np.array_equal(y_uv, -vis_y)


def test_rotate_vis_offsets_object():
    """
    A VisOffsets series can be rotated directly, keeping order and length
    """
    times = np.arange(50) * 1.
    vis_offsets = mocks.create_mock_vis_offsets(times)

    x_uv, y_uv = rotate_to_uv_frame(vis_offsets, "FUV")

    assert np.array_equal(x_uv, vis_offsets.xoff)
    assert np.array_equal(y_uv, -vis_offsets.yoff)

    # the input is untouched
    x_again, _ = rotate_to_uv_frame(vis_offsets, "NUV")
    assert len(x_again) == 50
    assert np.array_equal(vis_offsets.xoff, mocks.create_mock_vis_offsets(times).xoff)


def test_mismatched_shapes():
    with pytest.raises(ValueError):
        rotate_to_uv_frame((np.zeros(3), np.zeros(4)), "FUV")
