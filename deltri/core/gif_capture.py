"""Frame capture helper for animating a triangulation run.

Usage pattern:
    cap = GifCapture(enabled=True, directory='frames', outfile='run.gif', fps=4)
    cap.save(triangulator, 'seed', plot_fn=lambda tri, path: plot_triangulation(tri.points, tri.get_triangles(), outname=path))
    ... after each do_step() ...
    cap.save(triangulator, f'step_{k}', plot_fn=...)
    cap.finalize()

Frame plotting failures are logged and skipped; they never interrupt the run.
"""
from __future__ import annotations

import os
import logging
from typing import Callable, List, Optional

import imageio

from .logging_utils import get_logger

class GifCapture:
    def __init__(self, enabled: bool, directory: str, outfile: str, fps: int = 4, max_frames: int = 1000, logger: Optional[logging.Logger] = None):
        self.enabled = bool(enabled)
        self.directory = directory
        self.outfile = outfile
        self.fps = max(1, int(fps))
        self.max_frames = max_frames
        self.logger = logger or get_logger('deltri.gif')
        self.frames: List[str] = []
        if self.enabled:
            try:
                os.makedirs(self.directory, exist_ok=True)
            except OSError as e:
                self.logger.warning('GifCapture: could not create directory %s (%s); disabling', self.directory, e)
                self.enabled = False

    def save(self, subject, tag: str, plot_fn: Callable[[object, str], None]) -> Optional[str]:
        """Render ``subject`` to the next frame file via ``plot_fn(subject, path)``."""
        if not self.enabled or len(self.frames) >= self.max_frames:
            return None
        safe_tag = ''.join(ch if ch.isalnum() or ch in ('_', '-') else '_' for ch in str(tag))[:60]
        fname = os.path.join(self.directory, f"frame_{len(self.frames):05d}_{safe_tag}.png")
        try:
            plot_fn(subject, fname)
        except (OSError, ValueError) as e:
            self.logger.warning('GifCapture: frame %s failed (%s)', fname, e)
            return None
        self.frames.append(fname)
        return fname

    def finalize(self) -> Optional[str]:
        """Assemble the saved frames into ``directory/outfile``; needs at least two frames."""
        if not self.enabled or len(self.frames) < 2:
            return None
        images = [imageio.v2.imread(f) for f in self.frames]
        out_path = os.path.join(self.directory, self.outfile)
        imageio.mimsave(out_path, images, duration=int(1000 / self.fps), loop=0)
        self.logger.info('GifCapture: wrote %s (%d frames)', out_path, len(images))
        return out_path

__all__ = ['GifCapture']
