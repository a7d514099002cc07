"""
Agent-facing layer of the Scribble AI stack.

The orchestrator builds on ``scribble_core`` to deliver the public request
pipeline: content filtering, retrieval augmentation and backend dispatch.
"""

from .orchestrator import Orchestrator

__all__ = ["Orchestrator"]
