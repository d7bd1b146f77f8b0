import os
import copy
import warnings
import numpy as np
import astropy.io.fits as fits
from astropy.io.fits.card import VerifyWarning
import astropy.time as time
import uvitdrp
import uvitdrp.check as check

# DQI codes used by the pipeline
DQI_GOOD = 0
DQI_OFFSET_UNRELIABLE = 2

# columns of the Level-2 events table and their FITS formats (X and Y are set per file)
event_columns = {
    "FRAMENO": "J",
    "ORIG_INDEX": "J",
    "NEVENTS": "J",
    "X": None,
    "Y": None,
    "TIME": "D",
    "DQI": "I",
    "XOFF": "E",
    "YOFF": "E",
}

vis_offset_columns = {
    "TIME": "D",
    "XOFF": "E",
    "YOFF": "E",
    "ATT": "I",
}


class EventFrame():
    """
    One detector frame of an EventList. Reading or writing an attribute reads or writes
    the corresponding row of the parent EventList's column arrays.

    Args:
        events (uvitdrp.data.EventList): the parent event list
        index (int): row of this frame in the parent event list
    """
    def __init__(self, events, index):
        self._events = events
        self.index = index

    def _column_property(name):
        def getter(self):
            return getattr(self._events, name)[self.index]

        def setter(self, value):
            getattr(self._events, name)[self.index] = value

        return property(getter, setter)

    frameno = _column_property("frameno")
    orig_index = _column_property("orig_index")
    nevents = _column_property("nevents")
    time = _column_property("time")
    dqi = _column_property("dqi")
    xoff = _column_property("xoff")
    yoff = _column_property("yoff")

    del _column_property

    @property
    def x(self):
        # only the first nevents entries of the fixed capacity row hold photons
        return self._events.x[self.index, :self.nevents]

    @property
    def y(self):
        return self._events.y[self.index, :self.nevents]

    def __repr__(self):
        return "EventFrame(frameno={0}, time={1}, nevents={2}, dqi={3})".format(self.frameno, self.time,
                                                                               self.nevents, self.dqi)


class VisOffsets():
    """
    Spacecraft offsets measured by the visible channel, on its own time base.

    Args:
        time (np.array): sample times
        xoff (np.array): x offsets in visible channel coordinates
        yoff (np.array): y offsets in visible channel coordinates
        att (np.array): attitude status. 0 is a valid attitude, anything else is unreliable or missing
        is_dummy (bool): True if this series was synthesized because no usable extension existed

    Attributes:
        time, xoff, yoff, att (np.array): columns of the series
        is_dummy (bool): whether the series was synthesized
    """
    def __init__(self, time, xoff, yoff, att, is_dummy=False):
        self.time = check.oneD_array(time, "TIME", ValueError).astype(np.float64)
        self.xoff = check.oneD_array(xoff, "XOFF", ValueError).astype(np.float64)
        self.yoff = check.oneD_array(yoff, "YOFF", ValueError).astype(np.float64)
        self.att = check.oneD_array(att, "ATT", ValueError).astype(np.int32)
        self.is_dummy = is_dummy

        check.same_length([self.time, self.xoff, self.yoff, self.att], "Visible offset columns", ValueError)

    def __len__(self):
        return len(self.time)

    @classmethod
    def dummy(cls, frame_times):
        """
        Synthesize a visible offset series with zero offsets and unavailable attitude for every frame

        Args:
            frame_times (np.array): times of the frames the series should match

        Returns:
            uvitdrp.data.VisOffsets: all-unavailable series of the same length as frame_times
        """
        frame_times = np.asarray(frame_times, dtype=np.float64)
        nframes = len(frame_times)
        return cls(np.copy(frame_times), np.zeros(nframes), np.zeros(nframes), np.ones(nframes, dtype=np.int32),
                   is_dummy=True)

    def to_hdu(self):
        """
        Returns:
            astropy.io.fits.BinTableHDU: the series as a VIS_OFFSETS table extension
        """
        cols = [fits.Column(name=name, format=fmt, array=getattr(self, name.lower()))
                for name, fmt in vis_offset_columns.items()]
        hdu = fits.BinTableHDU.from_columns(cols)
        hdu.header["EXTNAME"] = "VIS_OFFSETS"
        return hdu


def load_vis_offsets(vis_source, frame_times):
    """
    Builds the visible offset series for a set of frames. An absent source, or one with
    one record or fewer, is replaced by a dummy series flagged as unavailable everywhere.

    Args:
        vis_source (astropy.io.fits.BinTableHDU, uvitdrp.data.VisOffsets, or None): the offsets extension
        frame_times (np.array): times of the event frames

    Returns:
        uvitdrp.data.VisOffsets: usable visible offset series
    """
    if vis_source is None:
        return VisOffsets.dummy(frame_times)

    if isinstance(vis_source, VisOffsets):
        vis_offsets = vis_source
    else:
        table = vis_source.data
        if table is None or len(table) <= 1:
            return VisOffsets.dummy(frame_times)
        vis_offsets = VisOffsets(np.array(table["TIME"], dtype=np.float64),
                                 np.array(table["XOFF"], dtype=np.float64),
                                 np.array(table["YOFF"], dtype=np.float64),
                                 np.array(table["ATT"], dtype=np.int32))

    if len(vis_offsets) <= 1:
        return VisOffsets.dummy(frame_times)

    return vis_offsets


class EventList():
    """
    Level-2 photon event list: one row per detector frame. Data can be created by passing in
    the columns explicitly, or by passing in a filepath to load a FITS file from disk

    Args:
        data_or_filepath (str or dict): either the filepath to the FITS file to read in OR a mapping
                                        (dict or FITS record array) from column name to column data
        pri_hdr (astropy.io.fits.Header): the primary header (required only if raw columns are passed in)
        ext_hdr (astropy.io.fits.Header): the events extension header (required only if raw columns are passed in)
        vis_offsets (uvitdrp.data.VisOffsets): visible channel offsets (only used if raw columns are passed in)

    Attributes:
        frameno (np.array): frame number
        orig_index (np.array): row index in the Level-1 data this frame came from
        nevents (np.array): number of valid photons in each frame
        x (np.array): 2-D array of photon x positions, N frames by fixed capacity
        y (np.array): 2-D array of photon y positions, N frames by fixed capacity
        time (np.array): frame time
        dqi (np.array): data quality indicator, 0 is good
        xoff (np.array): UV self-tracked x offset
        yoff (np.array): UV self-tracked y offset
        vis_offsets (uvitdrp.data.VisOffsets): visible channel offsets
        pri_hdr (astropy.io.fits.Header): primary header
        ext_hdr (astropy.io.fits.Header): events extension header
        filename (str): the filename corresponding to this EventList
        filedir (str): the file directory on disk where this file is to be/already saved.
    """
    def __init__(self, data_or_filepath, pri_hdr=None, ext_hdr=None, vis_offsets=None):
        if isinstance(data_or_filepath, str):
            with fits.open(data_or_filepath) as hdulist:
                self.pri_hdr = hdulist[0].header.copy()
                events_hdu = hdulist["EVENTS"] if "EVENTS" in hdulist else hdulist[1]
                self.ext_hdr = events_hdu.header.copy()
                self._load_columns(events_hdu.data)
                vis_hdu = hdulist["VIS_OFFSETS"] if "VIS_OFFSETS" in hdulist else None
                self.vis_offsets = load_vis_offsets(vis_hdu, self.time)

            self.filedir, self.filename = os.path.split(data_or_filepath)
            if len(self.filedir) == 0:
                self.filedir = "."
        else:
            if pri_hdr is None or ext_hdr is None:
                raise ValueError("Missing primary and/or extension headers, because you passed in raw data")
            self.pri_hdr = pri_hdr
            self.ext_hdr = ext_hdr
            self._load_columns(data_or_filepath)
            self.vis_offsets = load_vis_offsets(vis_offsets, self.time)
            self.filedir = "."
            self.filename = ""

        self.ext_hdr["EXTNAME"] = "EVENTS"

    def _load_columns(self, table):
        """
        Copies the event table columns into native numpy arrays

        Args:
            table (dict or FITS_rec): column name to column data
        """
        nframes = len(table["TIME"])
        self.frameno = np.array(table["FRAMENO"], dtype=np.int64)
        self.orig_index = np.array(table["ORIG_INDEX"], dtype=np.int64)
        self.nevents = np.array(table["NEVENTS"], dtype=np.int64)
        self.x = np.array(table["X"], dtype=np.float64)
        self.y = np.array(table["Y"], dtype=np.float64)
        # a single photon slot per frame reads back as a 1-D column
        if self.x.ndim == 1:
            self.x = self.x.reshape(nframes, 1)
        if self.y.ndim == 1:
            self.y = self.y.reshape(nframes, 1)
        self.time = np.array(table["TIME"], dtype=np.float64)
        self.dqi = np.array(table["DQI"]).astype(uvitdrp.dqi_dtype)
        self.xoff = np.array(table["XOFF"], dtype=np.float64)
        self.yoff = np.array(table["YOFF"], dtype=np.float64)

        check.same_length([self.time, self.frameno, self.orig_index, self.nevents, self.x, self.y, self.dqi,
                           self.xoff, self.yoff], "Event table columns", ValueError)
        if self.x.shape != self.y.shape:
            raise ValueError("X and Y photon arrays have different shapes {0} and {1}".format(self.x.shape, self.y.shape))
        if np.any(self.nevents > self.x.shape[1]):
            raise ValueError("NEVENTS exceeds the photon capacity of {0} per frame".format(self.x.shape[1]))

    def __iter__(self):
        return (EventFrame(self, i) for i in range(len(self)))

    def __getitem__(self, index):
        if isinstance(index, (int, np.integer)):
            if index < 0:
                index += len(self)
            if index < 0 or index >= len(self):
                raise IndexError("frame index {0} out of range for {1} frames".format(index, len(self)))
            return EventFrame(self, index)
        raise TypeError("EventList indices must be integers")

    def __len__(self):
        return len(self.time)

    @property
    def filepath(self):
        return os.path.join(self.filedir, self.filename)

    @property
    def detector(self):
        return str(self.pri_hdr.get("DETECTOR", "")).strip().upper()

    @property
    def capacity(self):
        return self.x.shape[1]

    def get_frame_range(self):
        """
        Frame range recorded in the primary header, defaulting to all frames

        Returns:
            tuple: (min_frame, max_frame) inclusive row indices
        """
        last_frame = max(len(self) - 1, 0)
        min_frame = int(self.pri_hdr.get("MINFRAME", 0))
        if "MAXFRAME" in self.pri_hdr:
            max_frame = int(self.pri_hdr["MAXFRAME"])
        else:
            max_frame = last_frame
        if max_frame < 0 or max_frame >= len(self):
            max_frame = last_frame
        min_frame = min(max(min_frame, 0), last_frame)
        return min_frame, max_frame

    def frame_time(self):
        """
        Returns:
            float: median time between consecutive frames (0 if fewer than two frames)
        """
        if len(self) < 2:
            return 0.
        return float(np.median(np.diff(self.time)))

    def copy(self):
        """
        Make a copy of this event list, including all columns and headers

        Returns:
            uvitdrp.data.EventList: a copy of this EventList
        """
        new_events = copy.deepcopy(self)
        new_events.ext_hdr['DRPVERSN'] = uvitdrp.__version__
        new_events.ext_hdr['DRPCTIME'] = time.Time.now().isot
        return new_events

    def to_hdulist(self):
        """
        Returns:
            astropy.io.fits.HDUList: primary, EVENTS, and (if measured) VIS_OFFSETS extensions
        """
        formats = dict(event_columns)
        formats["X"] = formats["Y"] = "{0}E".format(self.capacity)
        cols = [fits.Column(name=name, format=fmt, array=getattr(self, name.lower()))
                for name, fmt in formats.items()]

        prihdu = fits.PrimaryHDU(header=self.pri_hdr)
        events_hdu = fits.BinTableHDU.from_columns(cols, header=self.ext_hdr)
        hdulist = fits.HDUList([prihdu, events_hdu])
        if not self.vis_offsets.is_dummy:
            hdulist.append(self.vis_offsets.to_hdu())
        return hdulist

    def save(self, filedir=None, filename=None):
        """
        Save file to disk with user specified filepath

        Args:
            filedir (str): filedir to save to. Use self.filedir if not specified
            filename (str): filepath to save to. Use self.filename if not specified
        """
        if filename is not None:
            self.filename = filename
        if filedir is not None:
            self.filedir = filedir

        if len(self.filename) == 0:
            raise ValueError("Output filename is not defined. Please specify!")

        self.ext_hdr.set('DRPVERSN', uvitdrp.__version__, "uvitdrp version that produced this file")
        self.ext_hdr.set('DRPCTIME', time.Time.now().isot, "When this file was saved")

        hdulist = self.to_hdulist()
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=VerifyWarning) # fits save card length truncated warning
            hdulist.writeto(self.filepath, overwrite=True)
        hdulist.close()


class SkyImage():
    """
    Co-added sky image

    Args:
        data_or_filepath (str or np.array): either the filepath to the FITS file to read in OR the 2D image data
        pri_hdr (astropy.io.fits.Header): the primary header (required only if raw 2D data is passed in)
        ext_hdr (astropy.io.fits.Header): the image extension header (required only if raw 2D data is passed in)

    Attributes:
        data (np.array): 2-D image
        pri_hdr (astropy.io.fits.Header): primary header
        ext_hdr (astropy.io.fits.Header): image extension header
        filename (str): the filename corresponding to this image
        filedir (str): the file directory on disk where this image is to be/already saved.
    """
    def __init__(self, data_or_filepath, pri_hdr=None, ext_hdr=None):
        if isinstance(data_or_filepath, str):
            with fits.open(data_or_filepath) as hdulist:
                self.pri_hdr = hdulist[0].header.copy()
                self.ext_hdr = hdulist[1].header.copy()
                self.data = np.array(hdulist[1].data)
            self.filedir, self.filename = os.path.split(data_or_filepath)
            if len(self.filedir) == 0:
                self.filedir = "."
        else:
            if pri_hdr is None or ext_hdr is None:
                raise ValueError("Missing primary and/or extension headers, because you passed in raw data")
            self.data = data_or_filepath
            self.pri_hdr = pri_hdr
            self.ext_hdr = ext_hdr
            self.filedir = "."
            self.filename = ""

            self.ext_hdr.set('DRPVERSN', uvitdrp.__version__, "uvitdrp version that produced this file")
            self.ext_hdr.set('DRPCTIME', time.Time.now().isot, "When this file was saved")

    @property
    def filepath(self):
        return os.path.join(self.filedir, self.filename)

    def save(self, filedir=None, filename=None):
        """
        Save file to disk with user specified filepath

        Args:
            filedir (str): filedir to save to. Use self.filedir if not specified
            filename (str): filepath to save to. Use self.filename if not specified
        """
        if filename is not None:
            self.filename = filename
        if filedir is not None:
            self.filedir = filedir

        if len(self.filename) == 0:
            raise ValueError("Output filename is not defined. Please specify!")

        prihdu = fits.PrimaryHDU(header=self.pri_hdr)
        exthdu = fits.ImageHDU(data=self.data, header=self.ext_hdr)
        hdulist = fits.HDUList([prihdu, exthdu])
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=VerifyWarning)
            hdulist.writeto(self.filepath, overwrite=True)
        hdulist.close()


def get_dqi_flag_map():
    """
    Returns a dictionary mapping DQI names to the codes this pipeline assigns.

    Returns:
        dict: A dictionary with flag names as keys and integer codes as values.
    """
    return {
        "good": DQI_GOOD,
        "offset_unreliable": DQI_OFFSET_UNRELIABLE,
    }
