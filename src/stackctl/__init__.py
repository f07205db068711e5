"""stackctl — declarative deployment planner and applier."""

__version__ = "0.1.0"
