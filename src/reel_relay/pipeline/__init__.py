"""Single-item pipeline run."""

from .orchestrator import AccountLogger, PipelineRunner
from .results import RunResult

__all__ = ["AccountLogger", "PipelineRunner", "RunResult"]
