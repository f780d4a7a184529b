"""
Temporal Windowing Layer
========================

Drives the coherence engine over a timestamped record stream.

INVARIANTS:
- Records arrive in non-decreasing timestamp order
- Windows are finalized once incoming data passes their end
- A finalized window is never reopened

Modules:
- window: StreamingCoherence window controller
"""

from .window import StreamingCoherence, WindowState

__all__ = [
    'StreamingCoherence',
    'WindowState',
]
