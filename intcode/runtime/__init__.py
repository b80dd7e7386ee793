"""
intcode.runtime
===============
Multi-machine orchestration on a single cooperative scheduler.

Exports:
    Network         — N machines exchanging routed packets
    Node            — one machine on the network plus traffic counters
    Monitor         — sink for packets sent to MONITOR_ADDRESS
    Packet          — (destination, x, y) triple
    AmplifierChain  — phase-primed linear / feedback pipelines
"""

from .network import (
    DEFAULT_NETWORK_SIZE,
    IDLE_INPUT,
    MONITOR_ADDRESS,
    Monitor,
    Network,
    NetworkError,
    NetworkStalledError,
    Node,
    Packet,
    RoutingError,
)
from .amplifier import AmplifierChain, best_phase_sequence

__all__ = [
    "Network",
    "Node",
    "Monitor",
    "Packet",
    "NetworkError",
    "RoutingError",
    "NetworkStalledError",
    "MONITOR_ADDRESS",
    "IDLE_INPUT",
    "DEFAULT_NETWORK_SIZE",
    "AmplifierChain",
    "best_phase_sequence",
]
