"""
imagetools -- image and GIF manipulation commands.

Decodes PNG/JPEG/GIF sources into frame models, runs a fixed table of
geometric, colour, filter, generator and animation commands over them,
and encodes the results back to PNG or GIF.
"""

__version__ = "0.1.0"

from imagetools.exceptions import ImageToolsError, OperationError
from imagetools.operations import COMMANDS, Command, InputKind, get_command, run_command
from imagetools.types import EncodedImage, Frame, ImageModel

__all__ = [
    "COMMANDS",
    "Command",
    "EncodedImage",
    "Frame",
    "ImageModel",
    "ImageToolsError",
    "InputKind",
    "OperationError",
    "get_command",
    "run_command",
]
