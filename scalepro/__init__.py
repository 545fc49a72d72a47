"""scale-pro package initialization.

Piano drill engine: scale-degree drills transposed to any key and mode,
rendered as ABC notation and played back through a sample-based sampler.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
