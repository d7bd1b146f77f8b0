"""
Parameters shared across one reduction session
"""
import os
import uvitdrp
import uvitdrp.check as check

# name: (type, editable by the operator)
param_fields = {
    "events_file": (str, False),
    "detector": (str, False),
    "nframes": (int, False),
    "min_frame": (int, True),
    "max_frame": (int, True),
    "resolution": (int, True),
    "coarse_bin": (int, True),
    "fine_bin": (int, True),
    "ps_threshold": (float, True),
    "register_mode": (str, True),
    "output_dir": (str, True),
    "image_dir": (str, True),
    "png_dir": (str, True),
    "events_dir": (str, True),
    "overwrite": (bool, True),
}

register_modes = ("point", "diffuse")

# product directory fields and their default subdirectory of output_dir
product_subdirs = {"image_dir": "images", "png_dir": "png", "events_dir": "events"}

_bool_map = {"true": True, "t": True, "yes": True, "y": True, "1": True,
             "false": False, "f": False, "no": False, "n": False, "0": False}


class ParameterException(Exception):
    """Exception class for the params module."""


def _coerce(name, value, field_type):
    """
    Converts a value, possibly a string typed by the operator, to the type of a field

    Args:
        name (str): field name for error messages
        value (object): new value
        field_type (type): type of the field

    Returns:
        object: the converted value
    """
    try:
        if field_type is bool:
            if isinstance(value, str):
                return _bool_map[value.strip().lower()]
            return bool(value)
        if field_type is int:
            if isinstance(value, str):
                value = value.strip()
            as_float = float(value)
            if not as_float.is_integer():
                raise ValueError("not an integer")
            return int(as_float)
        if field_type is float:
            return float(value)
        return str(value).strip()
    except (KeyError, ValueError, TypeError):
        raise ParameterException("Cannot interpret {0!r} as a {1} for parameter {2}".format(value, field_type.__name__, name))


class ReductionParameters():
    """
    Typed record of the parameters of one reduction session. Values are changed through
    set_field(), which converts to the field's type and refuses fields the operator may not edit.

    Args:
        **kwargs: initial values for any of the fields in param_fields
    """
    def __init__(self, **kwargs):
        self.events_file = ""
        self.detector = ""
        self.nframes = 0
        self.min_frame = 0
        self.max_frame = 0
        self.resolution = uvitdrp.resolution
        self.coarse_bin = uvitdrp.coarse_bin
        self.fine_bin = uvitdrp.fine_bin
        self.ps_threshold = uvitdrp.ps_threshold
        self.register_mode = uvitdrp.register_mode
        self.output_dir = uvitdrp.output_dir if uvitdrp.output_dir is not None else "."
        self.image_dir = ""
        self.png_dir = ""
        self.events_dir = ""
        self.overwrite = True
        # product directories still derived from output_dir
        self._derived_dirs = set()

        for name, value in kwargs.items():
            self.set_field(name, value, force=True)

        self._fill_dirs()

    @classmethod
    def from_events(cls, events, **kwargs):
        """
        Seeds parameters for an event list: detector, frame count, and the frame range in its header

        Args:
            events (uvitdrp.data.EventList): the events to be reduced
            **kwargs: any other field values

        Returns:
            uvitdrp.params.ReductionParameters: the parameters
        """
        min_frame, max_frame = events.get_frame_range()
        values = {"events_file": events.filename, "detector": events.detector, "nframes": len(events),
                  "min_frame": min_frame, "max_frame": max_frame}
        values.update(kwargs)
        return cls(**values)

    def _fill_dirs(self):
        """
        Product directories default to subdirectories of the output directory, and follow it
        when it changes until they are set explicitly
        """
        for name, subdir in product_subdirs.items():
            if len(getattr(self, name)) == 0 or name in self._derived_dirs:
                setattr(self, name, os.path.join(self.output_dir, subdir))
                self._derived_dirs.add(name)

    def set_field(self, name, value, force=False):
        """
        Sets a single parameter by name

        Args:
            name (str): field name
            value (object): new value; strings are converted to the field type
            force (bool): also allow fields that are not editable by the operator

        Returns:
            object: the value stored
        """
        if name not in param_fields:
            raise ParameterException("Unknown parameter {0}".format(name))
        field_type, editable = param_fields[name]
        if not editable and not force:
            raise ParameterException("Parameter {0} cannot be edited".format(name))

        value = _coerce(name, value, field_type)
        if name == "register_mode":
            value = value.lower()
        self._validate(name, value)
        setattr(self, name, value)
        if name in product_subdirs:
            self._derived_dirs.discard(name)
        if name in product_subdirs or name == "output_dir":
            self._fill_dirs()
        return value

    def _validate(self, name, value):
        """
        Range checks for individual fields

        Args:
            name (str): field name
            value (object): converted value
        """
        if name in ("resolution", "coarse_bin", "fine_bin"):
            check.positive_scalar_integer(value, name, ParameterException)
        elif name in ("min_frame", "max_frame", "nframes"):
            check.nonnegative_scalar_integer(value, name, ParameterException)
        elif name == "ps_threshold":
            check.real_positive_scalar(value, name, ParameterException)
        elif name == "register_mode" and value not in register_modes:
            raise ParameterException("register_mode must be one of {0}".format(register_modes))

    def editable_fields(self):
        """
        Returns:
            list: names of the fields the operator may edit, in table order
        """
        return [name for name, (_, editable) in param_fields.items() if editable]

    def frame_slice(self):
        """
        Returns:
            slice: the frames inside [min_frame, max_frame]; empty if max_frame is before min_frame
        """
        return slice(self.min_frame, self.max_frame + 1)

    def as_dict(self):
        return {name: getattr(self, name) for name in param_fields}

    def copy(self):
        """
        Returns:
            uvitdrp.params.ReductionParameters: an independent copy
        """
        params_copy = ReductionParameters(**self.as_dict())
        params_copy._derived_dirs = set(self._derived_dirs)
        return params_copy

    def __repr__(self):
        return "\n".join("{0:>14s} = {1!r}".format(name, value) for name, value in self.as_dict().items())
