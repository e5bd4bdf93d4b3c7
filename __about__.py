# -*- coding: utf-8 -*-
# Tessera: Raster kernels for multi-channel images.
#
# Copyright (c) 2026 opticsWolf
#
# SPDX-License-Identifier: LGPL-3.0-or-later

"""
Project metadata for Tessera.
"""

from typing import Final

# Metadata Definitions
__title__: Final[str] = "Tessera"
__description__: Final[str] = (
    "An image-processing kernel library: border extrapolation, sub-pixel "
    "interpolation, a sliding-window transform engine and geometric warps "
    "over 8-bit and float raster buffers."
)
__version__: Final[str] = "0.1.0"
__author__: Final[str] = "opticsWolf"
__license__: Final[str] = "LGPL-3.0-or-later"
__copyright__: Final[str] = "Copyright (c) 2026 opticsWolf"

def metadata_summary() -> dict[str, str]:
    """Returns a dictionary of project metadata for introspection."""
    return {
        "title": __title__,
        "version": __version__,
        "license": __license__,
        "description": __description__,
        "copyright": __copyright__,
    }
