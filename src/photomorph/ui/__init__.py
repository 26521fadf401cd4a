"""Client-side flow for Photomorph.

The screen state machine in :mod:`photomorph.ui.flow` decides which request
is issued, and :mod:`photomorph.ui.client` sends it to the HTTP API.
"""

from photomorph.ui.client import ApiClient
from photomorph.ui.flow import FlowController, FlowError, ProgressSimulator, Screen

__all__ = ["ApiClient", "FlowController", "FlowError", "ProgressSimulator", "Screen"]
