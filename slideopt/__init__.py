"""Slideshow optimizer package.

Turns an ordered folder of still images into a single encoded video through a
pipeline of discovery, duration confirmation, filtergraph synthesis and a
single- or two-pass encode.
"""

from .config import PipelineConfig  # noqa: F401
from .pipeline import SlideshowOptimizer  # noqa: F401

__all__ = ["PipelineConfig", "SlideshowOptimizer"]
