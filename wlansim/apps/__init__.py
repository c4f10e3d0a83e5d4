"""
wlansim.apps - UDP echo applications and their traffic scheduling
"""

from wlansim.apps.echo import RoundTrip, UdpEchoClient, UdpEchoServer
from wlansim.apps.traffic import ApplicationEvent, TrafficScheduler

__all__ = ['RoundTrip', 'UdpEchoClient', 'UdpEchoServer', 'ApplicationEvent', 'TrafficScheduler']
