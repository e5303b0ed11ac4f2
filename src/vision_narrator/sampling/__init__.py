"""
Sampling Module
===============

Capture cadence and call lifecycle.

Components:
    - PeriodicSampler: Interval loop base class
    - AutoSampler: Automatic analysis during a call
    - DisplaySampler: Display-only capture outside a call
    - SamplingController: Call lifecycle and manual analysis
"""

from vision_narrator.sampling.scheduler import AutoSampler, DisplaySampler, PeriodicSampler
from vision_narrator.sampling.controller import SamplingController

__all__ = [
    "PeriodicSampler",
    "AutoSampler",
    "DisplaySampler",
    "SamplingController",
]
