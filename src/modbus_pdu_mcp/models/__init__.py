"""Data models for register/bit values and the process image."""

from .values import Register, DigitalOut, DigitalIn, BitVector
from .process_image import (
    IllegalAddressError,
    ProcessImage,
    SimpleProcessImage,
)
