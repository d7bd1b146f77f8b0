# Place to put detector-related utility functions

import numpy as np

# rotation (degrees) between the visible channel and each UV detector.
# FUV is related to the visible channel by an axis flip rather than a rotation.
detector_rotations = {
    "FUV": None,
    "NUV": 35.0,
}

# size of the detector in detector pixels
detector_size = 512


def get_detector_name(detector):
    """
    Normalizes a detector name read from a header

    Args:
        detector (str): detector name, e.g. "NUV"

    Returns:
        str: upper case, whitespace stripped name
    """
    if detector is None:
        return ""
    return str(detector).strip().upper()


def rotate_to_uv_frame(vis_offsets, detector):
    """
    Maps offsets measured by the visible channel into the coordinate frame of a UV detector.

    FUV offsets are the visible offsets with the y axis flipped. NUV offsets are the visible
    offsets rotated by +35 degrees. Any other detector gets all-zero offsets, which disables
    the visible channel as an offset source rather than failing.

    Args:
        vis_offsets (uvitdrp.data.VisOffsets or tuple): visible channel offsets, or an (x, y) pair of arrays
        detector (str): name of the UV detector

    Returns:
        np.array: x offsets in the UV detector frame
        np.array: y offsets in the UV detector frame
    """
    if isinstance(vis_offsets, tuple):
        xoff, yoff = vis_offsets
    else:
        xoff, yoff = vis_offsets.xoff, vis_offsets.yoff
    xoff = np.asarray(xoff, dtype=np.float64)
    yoff = np.asarray(yoff, dtype=np.float64)
    if xoff.shape != yoff.shape:
        raise ValueError("x and y offsets have different shapes {0} and {1}".format(xoff.shape, yoff.shape))

    detector = get_detector_name(detector)
    if detector not in detector_rotations:
        return np.zeros_like(xoff), np.zeros_like(yoff)

    angle = detector_rotations[detector]
    if angle is None:
        return np.copy(xoff), -yoff

    ang = np.radians(angle)
    x_uv = xoff * np.cos(ang) - yoff * np.sin(ang)
    y_uv = xoff * np.sin(ang) + yoff * np.cos(ang)
    return x_uv, y_uv
