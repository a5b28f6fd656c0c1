from .resend import ResendClient, ResendDeliveryProfile, render_html
from .s2 import S2StreamStore, StreamStore
from .workspace import Workspace, WorkspaceDeliveryProfile

__all__ = [
    "ResendClient",
    "ResendDeliveryProfile",
    "render_html",
    "S2StreamStore",
    "StreamStore",
    "Workspace",
    "WorkspaceDeliveryProfile",
]
