import argparse
import logging
import uvitdrp
import uvitdrp.data as data
from uvitdrp.params import ReductionParameters
from uvitdrp.session import ReductionSession


def step_1_initialize():
    """
    Initialize uvitdrp and reload its configuration
    """
    uvitdrp.create_config_dir()
    uvitdrp.update_pipeline_settings()


def step_2_load_data(events_filepath):
    """
    Reads a Level-2 events file

    Args:
        events_filepath (str): path to the events file

    Returns:
        uvitdrp.data.EventList: the events, with visible offsets attached
    """
    return data.EventList(events_filepath)


def step_3_process_data(events, interactive=False, **param_overrides):
    """
    Reduce an event list into an image and an updated events file

    Args:
        events (uvitdrp.data.EventList): the events to reduce
        interactive (bool): whether to prompt the operator
        **param_overrides: ReductionParameters field values to use instead of the defaults

    Returns:
        uvitdrp.session.ReductionSession: the finished session
    """
    params = ReductionParameters.from_events(events, **param_overrides)
    session = ReductionSession(events, params=params, interactive=interactive)
    return session.run()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Reduce UVIT Level-2 events into an image")
    parser.add_argument("events_files", nargs="+", help="Level-2 events FITS files")
    parser.add_argument("--interactive", action="store_true", help="prompt for parameters and offset source")
    parser.add_argument("--output_dir", default=None, help="directory for the products")
    parser.add_argument("--resolution", type=int, default=None, help="image pixels per detector pixel")
    parser.add_argument("--min_frame", type=int, default=None, help="first frame to use")
    parser.add_argument("--max_frame", type=int, default=None, help="last frame to use")
    parser.add_argument("--register_mode", choices=["point", "diffuse"], default=None)
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    step_1_initialize()

    overrides = {}
    for name in ["output_dir", "resolution", "min_frame", "max_frame", "register_mode"]:
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value

    for events_filepath in args.events_files:
        events = step_2_load_data(events_filepath)
        session = step_3_process_data(events, interactive=args.interactive, **overrides)
        for product in session.products:
            print(product)


if __name__ == "__main__":
    main()
