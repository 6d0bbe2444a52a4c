"""Peer destinations that share the transport and error taxonomy."""

from .braze import BrazeSettings, send_track_event, send_track_purchase
from .intercom import identify_contact

__all__ = ["BrazeSettings", "identify_contact", "send_track_event", "send_track_purchase"]
