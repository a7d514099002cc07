"""
HTTP facade for the Scribble AI orchestrator.

The gateway owns an explicit table of orchestrator handles so that nothing in
the core needs process-wide state; framework adapters wire endpoints onto it.
"""

from .gateway import ScribbleGatewayAPI
from .handles import AgentHandleTable

__all__ = ["AgentHandleTable", "ScribbleGatewayAPI"]
