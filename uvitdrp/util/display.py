import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


def scale_for_display(image, lower_percentile=1., upper_percentile=99.5):
    """
    Square-root stretch between two percentiles of the nonzero pixels

    Args:
        image (np.array): 2-D image
        lower_percentile (float): percentile mapped to black
        upper_percentile (float): percentile mapped to white

    Returns:
        np.array: image scaled to [0, 1]
    """
    image = np.asarray(image, dtype=np.float64)
    nonzero = image[image > 0]
    if nonzero.size == 0:
        return np.zeros_like(image)
    vmin, vmax = np.percentile(nonzero, [lower_percentile, upper_percentile])
    if vmax <= vmin:
        vmax = vmin + 1.
    scaled = np.clip((image - vmin) / (vmax - vmin), 0, 1)
    return np.sqrt(scaled)


def save_png(image, filepath):
    """
    Writes a grayscale preview of an image

    Args:
        image (np.array): 2-D image
        filepath (str): output PNG path
    """
    plt.imsave(filepath, scale_for_display(image), cmap="gray", origin="lower", vmin=0, vmax=1)
