"""Run-level plumbing shared by the API and the CLI."""

from essayvec.pipeline.progress_tracker import ProgressTracker

__all__ = ["ProgressTracker"]
