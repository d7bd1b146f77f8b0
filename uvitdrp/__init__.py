import configparser
import os
import pathlib
import numpy as np

__version__ = "1.0"
version = __version__

#### Create a configuration file for the uvitdrp if it doesn't exist.
def create_config_dir():
    """
    Checks if the default .uvitdrp directory exists, and if not, it sets it up
    """
    global config_folder
    homedir = pathlib.Path.home()
    config_folder = os.path.join(homedir, ".uvitdrp")

    # make folder if doesn't exist
    if not os.path.isdir(config_folder):
        os.mkdir(config_folder)

    # write config if it doesn't exist
    config_filepath = os.path.join(config_folder, "uvitdrp.cfg")
    if not os.path.exists(config_filepath):
        config = configparser.ConfigParser()
        config["PATH"] = {}
        config["PATH"]["output_dir"] = os.path.join(config_folder, "products") # default place for reduced products
        config["REDUCTION"] = {}
        config["REDUCTION"]["resolution"] = "4"
        config["REDUCTION"]["coarse_bin"] = "200"
        config["REDUCTION"]["fine_bin"] = "50"
        config["REDUCTION"]["ps_threshold"] = "3.0"
        config["REDUCTION"]["register_mode"] = "point"
        config["DATA"] = {}
        config["DATA"]["dqi_dtype"] = "16"

        with open(config_filepath, 'w') as f:
            config.write(f)

        print("uvitdrp: Configuration file written to {0}. Please edit if you want things stored in different locations.".format(config_filepath))


def update_pipeline_settings():
    """
    Loads configuration file to update pipeline settings
    """
    global config_filepath
    global output_dir, resolution, coarse_bin, fine_bin, ps_threshold, register_mode, dqi_dtype
    config_filepath = os.path.join(pathlib.Path.home(), ".uvitdrp", "uvitdrp.cfg")
    config = configparser.ConfigParser()
    config.read(config_filepath)

    dqi_datatype_map = {"32": np.int32, "16": np.int16, "8": np.int8}

    ## pipeline settings
    output_dir = config.get("PATH", "output_dir", fallback=None) # where products go if nothing else is specified
    resolution = config.getint("REDUCTION", "resolution", fallback=4) # image pixels per detector pixel
    coarse_bin = config.getint("REDUCTION", "coarse_bin", fallback=200) # frames per coarse registration bin
    fine_bin = config.getint("REDUCTION", "fine_bin", fallback=50) # frames per fine registration bin
    ps_threshold = config.getfloat("REDUCTION", "ps_threshold", fallback=3.0) # registration detection threshold
    register_mode = config.get("REDUCTION", "register_mode", fallback="point").lower() # point or diffuse source registration
    dqi_dtype = dqi_datatype_map[config.get("DATA", "dqi_dtype", fallback="16")] # integer size for DQI column


create_config_dir()
update_pipeline_settings()
