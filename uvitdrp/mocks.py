import os
import datetime
import numpy as np
import astropy.io.fits as fits

from uvitdrp.data import EventList, VisOffsets
from uvitdrp.detector import detector_size


def create_default_L2_headers(detector="FUV", min_frame=None, max_frame=None):
    """
    Creates default Level-2 event list headers

    Args:
        detector (str): detector name for the DETECTOR keyword
        min_frame (int): optional MINFRAME keyword
        max_frame (int): optional MAXFRAME keyword

    Returns:
        tuple:
            prihdr (fits.Header): Primary FITS header
            exthdr (fits.Header): Events extension header
    """
    prihdr = fits.Header()
    exthdr = fits.Header()

    dt_str = datetime.datetime.now().strftime("%Y-%m-%dT%H:%M:%S")
    prihdr['TELESCOP'] = 'ASTROSAT'
    prihdr['INSTRUME'] = 'UVIT'
    prihdr['DETECTOR'] = detector
    prihdr['FILTER'] = 'F1'
    prihdr['OBJECT'] = 'MOCK'
    prihdr['DATE'] = dt_str
    if min_frame is not None:
        prihdr['MINFRAME'] = min_frame
    if max_frame is not None:
        prihdr['MAXFRAME'] = max_frame

    exthdr['EXTNAME'] = 'EVENTS'
    exthdr['DATA_LEVEL'] = 'L2'

    return prihdr, exthdr


def create_mock_events(nframes=1000, detector="FUV", xoff=None, yoff=None, dqi=None, frame_time=0.035,
                       capacity=20, nevents=5, star_positions=((256., 256.),), vis_offsets=None,
                       min_frame=None, max_frame=None, seed=0):
    """
    Makes an event list of point sources seen through a drifting pointing. Each frame gets
    `nevents` photons spread over the sources, shifted by the frame's offset.

    Args:
        nframes (int): number of frames
        detector (str): detector name
        xoff (np.array): UV self-tracked x offsets. Defaults to a slow drift within +/- 5 pixels
        yoff (np.array): UV self-tracked y offsets. Defaults to a slow drift within +/- 5 pixels
        dqi (np.array): DQI of each frame. Defaults to all good
        frame_time (float): seconds between frames
        capacity (int): photon slots per frame
        nevents (int): photons per frame (must be <= capacity)
        star_positions (tuple): (x, y) detector positions of the sources
        vis_offsets (uvitdrp.data.VisOffsets): visible channel offsets. Defaults to none measured
        min_frame (int): optional MINFRAME header keyword
        max_frame (int): optional MAXFRAME header keyword
        seed (int): random seed

    Returns:
        uvitdrp.data.EventList: the mock event list
    """
    rng = np.random.default_rng(seed)
    t = np.arange(nframes) * frame_time
    phase = np.linspace(0, 2 * np.pi, nframes)
    if xoff is None:
        xoff = 5. * np.sin(phase)
    if yoff is None:
        yoff = 5. * np.cos(phase)
    if dqi is None:
        dqi = np.zeros(nframes, dtype=np.int16)
    xoff = np.asarray(xoff, dtype=np.float64)
    yoff = np.asarray(yoff, dtype=np.float64)

    x = np.zeros((nframes, capacity))
    y = np.zeros((nframes, capacity))
    stars = np.array(star_positions, dtype=np.float64)
    which = rng.integers(0, len(stars), size=(nframes, nevents))
    x[:, :nevents] = stars[which, 0] + xoff[:, np.newaxis] + rng.normal(0, 0.3, size=(nframes, nevents))
    y[:, :nevents] = stars[which, 1] + yoff[:, np.newaxis] + rng.normal(0, 0.3, size=(nframes, nevents))
    x = np.clip(x, 0, detector_size - 1)
    y = np.clip(y, 0, detector_size - 1)

    columns = {
        "FRAMENO": np.arange(nframes) + 1,
        "ORIG_INDEX": np.arange(nframes),
        "NEVENTS": np.full(nframes, nevents),
        "X": x,
        "Y": y,
        "TIME": t,
        "DQI": dqi,
        "XOFF": xoff,
        "YOFF": yoff,
    }
    prihdr, exthdr = create_default_L2_headers(detector=detector, min_frame=min_frame, max_frame=max_frame)
    return EventList(columns, pri_hdr=prihdr, ext_hdr=exthdr, vis_offsets=vis_offsets)


def create_mock_vis_offsets(times, att=None, xoff=None, yoff=None):
    """
    Makes a visible channel offset series

    Args:
        times (np.array): sample times
        att (np.array): attitude status. Defaults to all valid
        xoff (np.array): x offsets. Defaults to a slow drift within +/- 3 pixels
        yoff (np.array): y offsets. Defaults to a slow drift within +/- 3 pixels

    Returns:
        uvitdrp.data.VisOffsets: the series
    """
    times = np.asarray(times, dtype=np.float64)
    phase = np.linspace(0, np.pi, len(times))
    if att is None:
        att = np.zeros(len(times), dtype=np.int32)
    if xoff is None:
        xoff = 3. * np.sin(phase)
    if yoff is None:
        yoff = -3. * np.cos(phase)
    return VisOffsets(times, xoff, yoff, att)


def create_mock_l2_file(filedir, filename="mock_uvit_l2.fits", **kwargs):
    """
    Writes a mock Level-2 events file to disk

    Args:
        filedir (str): directory to save to
        filename (str): file name
        **kwargs: passed to create_mock_events()

    Returns:
        str: path of the written file
    """
    events = create_mock_events(**kwargs)
    if not os.path.exists(filedir):
        os.makedirs(filedir)
    events.save(filedir=filedir, filename=filename)
    return events.filepath
