"""
Various constants for formula_blend.
"""

from enum import Enum


class Channel(str, Enum):
    """
    Scalar channel variables bound inside a formula.

    Names ending in ``b`` belong to the base layer, names ending in ``s`` to
    the blend (source) layer.
    """

    RED_BASE = "rb"
    GREEN_BASE = "gb"
    BLUE_BASE = "bb"
    ALPHA_BASE = "ab"
    RED_BLEND = "rs"
    GREEN_BLEND = "gs"
    BLUE_BLEND = "bs"
    ALPHA_BLEND = "as"


#: Channel variable names in engine argument order.
CHANNEL_NAMES = tuple(channel.value for channel in Channel)

#: Vector shorthand tokens and their per output channel expansion.
VECTOR_EXPANSION = {
    "B": ("rb", "gb", "bb", "ab"),
    "T": ("rs", "gs", "bs", "as"),
}

#: Bytes per RGBA pixel.
PIXEL_SIZE = 4

#: Name of the layer receiving the blend result.
RESULT_LAYER_NAME = "Custom Blend Result"

#: Host conflict retry: attempts and fixed wait in seconds.
HOST_CONFLICT_ATTEMPTS = 3
HOST_CONFLICT_WAIT = 0.6

#: Preset write retry: initial wait and cap in seconds.
PERSISTENCE_RETRY_BASE = 1.0
PERSISTENCE_RETRY_CAP = 8.0

#: Preset file name and schema version.
PRESET_FILE_NAME = "formulas.json"
PRESET_FILE_VERSION = 1
