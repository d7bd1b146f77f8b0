"""
Module to support frame registration and co-addition
"""
import logging
import numpy as np

from uvitdrp.data import DQI_GOOD
from uvitdrp.detector import detector_size

logger = logging.getLogger(__name__)


def good_frame_mask(events, params):
    """
    Frames that go into registration and co-addition: good DQI and inside the frame range

    Args:
        events (uvitdrp.data.EventList): the frames
        params (uvitdrp.params.ReductionParameters): reduction parameters

    Returns:
        np.array: boolean mask, one entry per frame
    """
    mask = np.zeros(len(events), dtype=bool)
    mask[params.frame_slice()] = True
    mask &= events.dqi == DQI_GOOD
    return mask


def create_image_accumulator(params):
    """
    Args:
        params (uvitdrp.params.ReductionParameters): reduction parameters

    Returns:
        np.array: empty 2-D image covering the detector at the requested resolution
    """
    npix = detector_size * params.resolution
    return np.zeros((npix, npix), dtype=np.float64)


def register(events, params, mask, xoff, yoff, threshold, mode):
    """
    Registration boundary. Refines per-frame offsets from the photon data itself.

    Any callable with this signature can be handed to a ReductionSession in its place.
    This default performs no refinement and returns copies of the offsets it is given.

    Args:
        events (uvitdrp.data.EventList): the frames
        params (uvitdrp.params.ReductionParameters): reduction parameters
        mask (np.array): boolean mask of frames to use
        xoff (np.array): x offsets, scaled by params.resolution
        yoff (np.array): y offsets, scaled by params.resolution
        threshold (float): detection threshold for the registration
        mode (str): "point" or "diffuse"

    Returns:
        np.array: refined x offsets, scaled by params.resolution
        np.array: refined y offsets, scaled by params.resolution
    """
    logger.debug("No registration refinement applied to {0} frames (mode={1}, threshold={2})".format(
        np.count_nonzero(mask), mode, threshold))
    return np.copy(xoff), np.copy(yoff)


def add_frames(events, image, params, xoff, yoff, mask=None):
    """
    Co-adds the photons of a set of frames into an image. Each photon position is scaled to
    the image resolution and the frame's offset is removed before it is binned.

    Args:
        events (uvitdrp.data.EventList): the frames
        image (np.array): 2-D image accumulator, modified in place
        params (uvitdrp.params.ReductionParameters): reduction parameters
        xoff (np.array): x offsets, scaled by params.resolution
        yoff (np.array): y offsets, scaled by params.resolution
        mask (np.array): boolean mask of frames to add. Defaults to good_frame_mask()

    Returns:
        int: number of frames added
    """
    xoff = np.asarray(xoff, dtype=np.float64)
    yoff = np.asarray(yoff, dtype=np.float64)
    if len(xoff) != len(events) or len(yoff) != len(events):
        raise ValueError("Need one offset per frame: got {0} and {1} offsets for {2} frames".format(
            len(xoff), len(yoff), len(events)))
    if mask is None:
        mask = good_frame_mask(events, params)

    # only the first nevents slots of each frame hold photons
    photon_mask = np.arange(events.capacity)[np.newaxis, :] < events.nevents[:, np.newaxis]
    photon_mask &= mask[:, np.newaxis]

    xs = events.x * params.resolution - xoff[:, np.newaxis]
    ys = events.y * params.resolution - yoff[:, np.newaxis]
    ix = np.floor(xs[photon_mask]).astype(int)
    iy = np.floor(ys[photon_mask]).astype(int)

    on_image = (ix >= 0) & (ix < image.shape[1]) & (iy >= 0) & (iy < image.shape[0])
    np.add.at(image, (iy[on_image], ix[on_image]), 1)

    nadded = int(np.count_nonzero(mask))
    logger.info("Added {0} photons from {1} frames ({2} fell off the image)".format(
        np.count_nonzero(on_image), nadded, np.count_nonzero(~on_image)))
    return nadded
