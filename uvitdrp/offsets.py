"""
Decide which measurement of the spacecraft offsets to trust for each frame.

Two independent offset series exist for every observation: the offsets the UV detector
tracks itself, and the offsets measured by the visible channel on its own (generally
sparser) time base. The functions here classify each series as usable or not, choose one
as the authoritative per-frame offset series, and raise the DQI of frames the chosen
series cannot cover.
"""
import logging
import numpy as np
from scipy.interpolate import interp1d

from uvitdrp.data import DQI_GOOD, DQI_OFFSET_UNRELIABLE
from uvitdrp.detector import rotate_to_uv_frame

logger = logging.getLogger(__name__)

# UV offsets at or above this everywhere mean the tracking never locked
uv_saturation_limit = 100.
# UV offsets beyond this on either axis are sensor excursions
uv_excursion_limit = 500.
# fraction of valid visible samples above which the visible channel is preferred
vis_min_valid_fraction = 0.5

# offset sources
SOURCE_VIS = "VIS"
SOURCE_UV = "UV"
SOURCE_NONE = "NONE"


class OffsetAvailability():
    """
    Which offset series have usable data

    Args:
        uv_available (bool): whether the UV self-tracked offsets are usable
        vis_available (bool): whether any visible channel sample has a valid attitude
        vis_valid_fraction (float): fraction of visible channel samples with a valid attitude
    """
    def __init__(self, uv_available, vis_available, vis_valid_fraction):
        self.uv_available = bool(uv_available)
        self.vis_available = bool(vis_available)
        self.vis_valid_fraction = float(vis_valid_fraction)

    def __repr__(self):
        return "OffsetAvailability(uv_available={0}, vis_available={1}, vis_valid_fraction={2:.3f})".format(
            self.uv_available, self.vis_available, self.vis_valid_fraction)


class OffsetSolution():
    """
    The authoritative per-frame offsets chosen by reconcile_offsets(), along with both candidate
    series so that the choice can be overridden later.

    Args:
        source (str): SOURCE_VIS, SOURCE_UV, or SOURCE_NONE
        availability (uvitdrp.offsets.OffsetAvailability): classification the choice was based on
        uv_xoff (np.array): UV self-tracked x offsets, one per frame
        uv_yoff (np.array): UV self-tracked y offsets, one per frame
        vis_xoff (np.array): rotated visible x offsets resampled to the frame times
        vis_yoff (np.array): rotated visible y offsets resampled to the frame times
        nflagged (int): number of frames whose DQI was raised

    Attributes:
        xoff (np.array): authoritative x offsets
        yoff (np.array): authoritative y offsets
    """
    def __init__(self, source, availability, uv_xoff, uv_yoff, vis_xoff, vis_yoff, nflagged=0):
        self.availability = availability
        self.uv_xoff = uv_xoff
        self.uv_yoff = uv_yoff
        self.vis_xoff = vis_xoff
        self.vis_yoff = vis_yoff
        self.nflagged = nflagged
        self.use_source(source)

    def use_source(self, source):
        """
        Makes one of the candidate series the authoritative one. SOURCE_NONE uses the UV series.

        Args:
            source (str): SOURCE_VIS, SOURCE_UV, or SOURCE_NONE
        """
        if source == SOURCE_VIS:
            self.xoff, self.yoff = np.copy(self.vis_xoff), np.copy(self.vis_yoff)
        elif source in (SOURCE_UV, SOURCE_NONE):
            self.xoff, self.yoff = np.copy(self.uv_xoff), np.copy(self.uv_yoff)
        else:
            raise ValueError("Unknown offset source {0}".format(source))
        self.source = source

    def __len__(self):
        return len(self.xoff)


def check_uv_offsets(xoff, yoff):
    """
    Whether the UV self-tracked offsets are usable: the smallest absolute offset must be below
    the saturation limit and the offsets must not be identically zero. Both axes are pooled, so
    the minimum and maximum are taken over the x and y magnitudes together. A saturated x axis
    with a y axis of exactly zero therefore still counts as usable.

    Args:
        xoff (np.array): UV x offsets
        yoff (np.array): UV y offsets

    Returns:
        bool: True if the UV offsets are usable
    """
    magnitudes = np.abs(np.concatenate([np.ravel(xoff), np.ravel(yoff)]))
    if magnitudes.size == 0:
        return False
    return bool(np.min(magnitudes) < uv_saturation_limit and np.max(magnitudes) > 0)


def check_vis_offsets(att):
    """
    Whether any visible channel sample has a valid attitude, and what fraction do.

    Args:
        att (np.array): attitude status of each visible sample, 0 is valid

    Returns:
        bool: True if at least one sample is valid
        float: fraction of valid samples (0 for an empty series)
    """
    att = np.ravel(att)
    if att.size == 0:
        return False, 0.
    nvalid = np.count_nonzero(att == 0)
    return nvalid > 0, nvalid / att.size


def classify_offsets(events, vis_offsets=None):
    """
    Classifies both offset series of an observation

    Args:
        events (uvitdrp.data.EventList): the frames, carrying the UV self-tracked offsets
        vis_offsets (uvitdrp.data.VisOffsets): visible offsets. Defaults to events.vis_offsets

    Returns:
        uvitdrp.offsets.OffsetAvailability: the classification
    """
    if vis_offsets is None:
        vis_offsets = events.vis_offsets
    uv_available = check_uv_offsets(events.xoff, events.yoff)
    vis_available, vis_valid_fraction = check_vis_offsets(vis_offsets.att)
    return OffsetAvailability(uv_available, vis_available, vis_valid_fraction)


def nearest_sample_indices(frame_times, sample_times):
    """
    For each frame, the index of the sample closest in time. Ties go to the earlier sample.

    Args:
        frame_times (np.array): times of the frames
        sample_times (np.array): times of the samples, in any order

    Returns:
        np.array: integer indices into sample_times, one per frame
    """
    frame_times = np.asarray(frame_times, dtype=np.float64)
    sample_times = np.asarray(sample_times, dtype=np.float64)
    if sample_times.size == 0:
        raise ValueError("Cannot match frames against an empty sample series")
    if sample_times.size == 1:
        return np.zeros(frame_times.shape, dtype=int)

    order = np.argsort(sample_times, kind="stable")
    sorted_times = sample_times[order]
    right = np.clip(np.searchsorted(sorted_times, frame_times), 1, sorted_times.size - 1)
    left = right - 1
    use_left = (frame_times - sorted_times[left]) <= (sorted_times[right] - frame_times)
    return order[np.where(use_left, left, right)]


def resample_to_frames(frame_times, sample_times, values):
    """
    Linearly interpolates a sampled series onto the frame times, holding the edge values
    outside the sampled range.

    Args:
        frame_times (np.array): times of the frames
        sample_times (np.array): times of the samples
        values (np.array): sampled values

    Returns:
        np.array: one value per frame
    """
    frame_times = np.asarray(frame_times, dtype=np.float64)
    sample_times = np.asarray(sample_times, dtype=np.float64)
    values = np.asarray(values, dtype=np.float64)
    if sample_times.size == 0:
        raise ValueError("Cannot resample an empty sample series")

    # repeated sample times would make the interpolation ill-defined
    sample_times, unique_idx = np.unique(sample_times, return_index=True)
    values = values[unique_idx]
    if sample_times.size == 1:
        return np.full(frame_times.shape, values[0])

    f = interp1d(sample_times, values, kind='linear', bounds_error=False,
                 fill_value=(values[0], values[-1]), assume_sorted=True)
    return f(frame_times)


def flag_frames(dqi, bad_frames):
    """
    Raises the DQI of good frames that are bad for offsets. Frames that already carry a
    nonzero DQI keep it, so no flag is ever cleared.

    Args:
        dqi (np.array): DQI array, modified in place
        bad_frames (np.array): boolean mask of frames the offsets cannot cover

    Returns:
        int: number of frames newly flagged
    """
    newly_flagged = bad_frames & (dqi == DQI_GOOD)
    dqi[newly_flagged] = DQI_OFFSET_UNRELIABLE
    return int(np.count_nonzero(newly_flagged))


def reconcile_offsets(events, vis_offsets=None, detector=None, availability=None):
    """
    Chooses the authoritative spacecraft offset series for a set of frames and flags the frames
    that series cannot cover. The first matching rule wins:

    1. Visible channel offsets, if any visible sample is valid and more than half of them are.
       Frames whose nearest visible sample has an invalid attitude are flagged.
    2. UV self-tracked offsets, if they are usable. Frames with an offset beyond the excursion
       limit on either axis are flagged.
    3. Otherwise the UV offsets are passed through unflagged and the data goes on unregistered.

    events.dqi is modified in place. Offsets stored in events are not modified.

    Args:
        events (uvitdrp.data.EventList): the frames
        vis_offsets (uvitdrp.data.VisOffsets): visible offsets. Defaults to events.vis_offsets
        detector (str): UV detector name. Defaults to events.detector
        availability (uvitdrp.offsets.OffsetAvailability): classification to use. Computed if not given

    Returns:
        uvitdrp.offsets.OffsetSolution: the chosen offsets, one pair per frame
    """
    if vis_offsets is None:
        vis_offsets = events.vis_offsets
    if detector is None:
        detector = events.detector

    if availability is None:
        availability = classify_offsets(events, vis_offsets)
    logger.info("Offset availability for {0} frames: {1}".format(len(events), availability))

    uv_xoff = np.copy(events.xoff)
    uv_yoff = np.copy(events.yoff)

    if len(vis_offsets) > 0:
        vis_x, vis_y = rotate_to_uv_frame(vis_offsets, detector)
        vis_xoff = resample_to_frames(events.time, vis_offsets.time, vis_x)
        vis_yoff = resample_to_frames(events.time, vis_offsets.time, vis_y)
    else:
        vis_xoff = np.zeros(len(events))
        vis_yoff = np.zeros(len(events))

    if availability.vis_available and availability.vis_valid_fraction > vis_min_valid_fraction:
        nearest = nearest_sample_indices(events.time, vis_offsets.time)
        bad_frames = vis_offsets.att[nearest] != 0
        nflagged = flag_frames(events.dqi, bad_frames)
        source = SOURCE_VIS
        logger.info("Using visible channel offsets ({0:.1%} valid); flagged {1} frames without valid attitude".format(
            availability.vis_valid_fraction, nflagged))
    elif availability.uv_available:
        bad_frames = (np.abs(uv_xoff) > uv_excursion_limit) | (np.abs(uv_yoff) > uv_excursion_limit)
        nflagged = flag_frames(events.dqi, bad_frames)
        source = SOURCE_UV
        logger.info("Using UV self-tracked offsets; flagged {0} frames with excursions beyond {1}".format(
            nflagged, uv_excursion_limit))
    else:
        nflagged = 0
        source = SOURCE_NONE
        logger.warning("No usable offsets for {0} frames; data will not be registered".format(len(events)))

    return OffsetSolution(source, availability, uv_xoff, uv_yoff, vis_xoff, vis_yoff, nflagged=nflagged)
