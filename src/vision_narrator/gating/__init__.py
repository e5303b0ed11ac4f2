"""
Gating Module
=============

Admission control shared by every caller of the description endpoint.
"""

from vision_narrator.gating.rate_gate import RateGate

__all__ = ["RateGate"]
