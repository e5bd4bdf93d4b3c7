# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Compiled window operators for the sliding-window engine.
"""

from .base import KernelOperator
from .linear import ConvolutionOperator, GradientOperator
from .rank import RankOperator, DilateOperator, ErodeOperator, MedianOperator
from .threshold import ThresholdType, ThresholdOperator, AdaptiveThresholdOperator
from .kuwahara import KuwaharaOperator

__all__ = [
    "KernelOperator",
    "ConvolutionOperator",
    "GradientOperator",
    "RankOperator",
    "DilateOperator",
    "ErodeOperator",
    "MedianOperator",
    "ThresholdType",
    "ThresholdOperator",
    "AdaptiveThresholdOperator",
    "KuwaharaOperator",
]
