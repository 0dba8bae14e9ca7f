"""Datalog-based borrow checking over control-flow, loan and move-path facts."""

__version__ = "0.1.0"