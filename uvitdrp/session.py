"""
One reduction session: the loop that reconciles offsets, registers and co-adds the frames,
saves the products, and optionally does it all again with edited parameters.
"""
import os
import logging
import numpy as np
import astropy.io.fits as fits

import uvitdrp.combine as combine
import uvitdrp.interactive as interactive
import uvitdrp.offsets as offsets
from uvitdrp.data import SkyImage
from uvitdrp.params import ReductionParameters
from uvitdrp.util.display import save_png

logger = logging.getLogger(__name__)

# states of the reduction loop
CLASSIFY = "classify"
RECONCILE = "reconcile"
OVERRIDE = "override"
REGISTER = "register"
PERSIST = "persist"
REPEAT = "repeat"
DONE = "done"


class ReductionSession():
    """
    Owns the frames and parameters of one reduction and runs the reduction loop over them.

    The DQI of the input is snapshotted when the session is created. Every pass starts from
    that snapshot, so flags raised by one pass never leak into the next.

    Args:
        events (uvitdrp.data.EventList): the frames to reduce
        params (uvitdrp.params.ReductionParameters): parameters. Seeded from the events if not given
        interactive (bool): whether to prompt the operator. If False, no prompt is ever shown
        prompt (callable): function that shows a string and returns the operator's reply
        register_func (callable): registration routine with the signature of uvitdrp.combine.register
        save_products (bool): in unattended mode, whether the products of the pass are saved

    Attributes:
        saved_dqi (np.array): the DQI as read from the input
        availability (uvitdrp.offsets.OffsetAvailability): classification from the latest pass
        solution (uvitdrp.offsets.OffsetSolution): offsets chosen in the latest pass
        xoff (np.array): registered x offsets from the latest pass, in detector pixels
        yoff (np.array): registered y offsets from the latest pass, in detector pixels
        image (uvitdrp.data.SkyImage): co-added image from the latest pass
        products (list): filepaths written by persist()
        iterations (int): number of passes that reached classification
    """
    def __init__(self, events, params=None, interactive=False, prompt=input, register_func=combine.register,
                 save_products=True):
        self.events = events
        if params is None:
            params = ReductionParameters.from_events(events)
        self.params = params
        self.interactive = interactive
        self.prompt = prompt
        self.register_func = register_func
        self.save_products = save_products

        self.saved_dqi = self.snapshot_dqi()
        self.availability = None
        self.solution = None
        self.xoff = None
        self.yoff = None
        self.image = None
        self.nframes_added = 0
        self.products = []
        self.iterations = 0

    def snapshot_dqi(self):
        """
        Returns:
            np.array: a copy of the current DQI, independent of the working array
        """
        return np.copy(self.events.dqi)

    def restore_dqi(self):
        """
        Puts the snapshotted DQI back into the working array
        """
        self.events.dqi[:] = self.saved_dqi

    def count_good_frames(self):
        """
        Returns:
            int: number of frames in the frame range with a good DQI
        """
        return int(np.count_nonzero(combine.good_frame_mask(self.events, self.params)))

    def classify(self):
        """Classifies the UV and visible offsets of the events"""
        self.availability = offsets.classify_offsets(self.events)
        return self.availability

    def reconcile(self):
        """Chooses the offsets for this pass and flags the frames they cannot cover"""
        self.solution = offsets.reconcile_offsets(self.events, availability=self.availability)
        return self.solution

    def override(self):
        """
        Lets the operator overrule the chosen offset source. Does nothing in unattended mode.
        """
        if self.interactive:
            interactive.choose_offset_source(self.solution, prompt=self.prompt)
        return self.solution

    def register_and_coadd(self):
        """
        Registers the frames with the chosen offsets and co-adds them into an image

        Returns:
            uvitdrp.data.SkyImage: the co-added image
        """
        params = self.params
        mask = combine.good_frame_mask(self.events, params)

        xoff_scaled = self.solution.xoff * params.resolution
        yoff_scaled = self.solution.yoff * params.resolution
        xoff_scaled, yoff_scaled = self.register_func(self.events, params, mask, xoff_scaled, yoff_scaled,
                                                      params.ps_threshold, params.register_mode)

        image = combine.create_image_accumulator(params)
        self.nframes_added = combine.add_frames(self.events, image, params, xoff_scaled, yoff_scaled, mask=mask)
        self.xoff = np.asarray(xoff_scaled) / params.resolution
        self.yoff = np.asarray(yoff_scaled) / params.resolution

        self.image = self._make_sky_image(image)
        return self.image

    def _make_sky_image(self, image):
        """
        Wraps the accumulated image with headers describing how it was made

        Args:
            image (np.array): 2-D co-added image

        Returns:
            uvitdrp.data.SkyImage: the image with headers
        """
        pri_hdr = self.events.pri_hdr.copy()
        ext_hdr = fits.Header()
        ext_hdr["EXTNAME"] = "IMAGE"
        ext_hdr.set("NFRAMES", self.nframes_added, "Number of frames co-added")
        ext_hdr.set("EXPTIME", self.nframes_added * self.events.frame_time(), "Exposure time (s)")
        ext_hdr.set("OFFSRC", self.solution.source, "Source of the spacecraft offsets")
        ext_hdr.set("RESOLUT", self.params.resolution, "Image pixels per detector pixel")
        ext_hdr.set("MINFRAME", self.params.min_frame, "First frame used")
        ext_hdr.set("MAXFRAME", self.params.max_frame, "Last frame used")
        sky_image = SkyImage(image, pri_hdr=pri_hdr, ext_hdr=ext_hdr)
        sky_image.filename = self._product_name("image.fits")
        return sky_image

    def _product_name(self, suffix):
        """
        Args:
            suffix (str): what distinguishes this product

        Returns:
            str: filename derived from the input events filename
        """
        base = self.events.filename
        if base.endswith(".gz"):
            base = base[:-3]
        base = os.path.splitext(base)[0]
        if len(base) == 0:
            base = "uvit_{0}".format(self.events.detector.lower() or "events")
        return "{0}_{1}".format(base, suffix)

    def persist(self):
        """
        Saves the image, a PNG preview, and the events file. The saved events carry the
        registered offsets, the DQI as it was read in, and the frame range that was used.

        Returns:
            list: filepaths written in this call
        """
        params = self.params
        written = []

        image_path = os.path.join(params.image_dir, self.image.filename)
        if self._can_write(image_path):
            os.makedirs(params.image_dir, exist_ok=True)
            self.image.save(filedir=params.image_dir)
            written.append(image_path)

        png_path = os.path.join(params.png_dir, self._product_name("image.png"))
        if self._can_write(png_path):
            os.makedirs(params.png_dir, exist_ok=True)
            save_png(self.image.data, png_path)
            written.append(png_path)

        out_events = self.events.copy()
        out_events.dqi[:] = self.saved_dqi
        out_events.xoff[:] = self.xoff
        out_events.yoff[:] = self.yoff
        out_events.pri_hdr.set("MINFRAME", params.min_frame, "First frame used")
        out_events.pri_hdr.set("MAXFRAME", params.max_frame, "Last frame used")
        out_events.pri_hdr.set("OFFSRC", self.solution.source, "Source of the spacecraft offsets")
        out_events.ext_hdr["HISTORY"] = "Offsets replaced with {0} offsets".format(self.solution.source)
        events_path = os.path.join(params.events_dir, self._product_name("events.fits"))
        if self._can_write(events_path):
            os.makedirs(params.events_dir, exist_ok=True)
            out_events.save(filedir=params.events_dir, filename=os.path.basename(events_path))
            written.append(events_path)

        for filepath in written:
            logger.info("Wrote {0}".format(filepath))
        self.products.extend(written)
        return written

    def _can_write(self, filepath):
        if os.path.exists(filepath) and not self.params.overwrite:
            logger.warning("{0} exists and overwrite is off; not saving it".format(filepath))
            return False
        return True

    def _no_good_frames(self):
        """
        Handles a frame range with no good frames

        Returns:
            str: the next state
        """
        message = "Not enough good points: no frames between {0} and {1} have DQI 0".format(
            self.params.min_frame, self.params.max_frame)
        if not self.interactive:
            logger.warning(message)
            return DONE

        print(message)
        if interactive.ask_yes_no("Edit parameters and try again?", prompt=self.prompt):
            interactive.edit_params(self.params, prompt=self.prompt)
            self.restore_dqi()
            return CLASSIFY
        return DONE

    def run(self):
        """
        Runs the reduction loop until the operator stops it, or after a single pass in unattended mode

        Returns:
            uvitdrp.session.ReductionSession: this session
        """
        if self.interactive and interactive.ask_yes_no("Edit parameters before reducing?", prompt=self.prompt):
            interactive.edit_params(self.params, prompt=self.prompt)

        state = CLASSIFY
        while state != DONE:
            if state == CLASSIFY:
                if self.count_good_frames() == 0:
                    state = self._no_good_frames()
                    continue
                self.iterations += 1
                self.classify()
                state = RECONCILE
            elif state == RECONCILE:
                self.reconcile()
                state = OVERRIDE
            elif state == OVERRIDE:
                self.override()
                state = REGISTER
            elif state == REGISTER:
                self.register_and_coadd()
                state = PERSIST
            elif state == PERSIST:
                if self.interactive:
                    save = interactive.ask_yes_no("Save the products?", prompt=self.prompt)
                else:
                    save = self.save_products
                if save:
                    self.persist()
                state = REPEAT
            elif state == REPEAT:
                if self.interactive and interactive.ask_yes_no("Reprocess with different parameters?", prompt=self.prompt):
                    interactive.edit_params(self.params, prompt=self.prompt)
                    self.restore_dqi()
                    state = CLASSIFY
                else:
                    state = DONE

        return self
