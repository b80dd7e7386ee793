"""
intcode/runtime/network.py — Cooperative multi-machine network
===============================================================

Runs N machines round-robin on one thread and routes the packets they emit.

Protocol
--------
  - node *i* is booted with its own address as its first input
  - a node that suspends for input is handed ``IDLE_INPUT`` (-1), so a
    poll of an empty queue never blocks the scheduler
  - three pending outputs form a packet ``(destination, x, y)``; ``x`` and
    ``y`` are appended to the destination node's input queue
  - packets addressed to ``MONITOR_ADDRESS`` (255) go to the ``Monitor``

Idle detection
--------------
A node is idle when it is blocked on an input instruction and its queue is
empty or holds only the idle sentinel.  When every live node is idle the
monitor replays its most recent packet to node 0.  Two consecutive replays
carrying the same ``y`` end the run; that ``y`` is the steady-state result.

Nodes never share state: the only cross-node mutation is appending to a
peer's input queue, and only the scheduler does that.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from intcode.vm import Machine, MachineError, Signal

log = logging.getLogger(__name__)

MONITOR_ADDRESS      = 255
IDLE_INPUT           = -1
DEFAULT_NETWORK_SIZE = 50


# ─────────────────────────────────────────────────────────────────────────────
# Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class NetworkError(MachineError):
    pass


class RoutingError(NetworkError):
    """A node addressed a packet to a destination that does not exist."""


class NetworkStalledError(NetworkError):
    """The network can make no further progress (all halted, or tick budget spent)."""


# ─────────────────────────────────────────────────────────────────────────────
# Packets and nodes
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Packet:
    destination: int
    x:           int
    y:           int
    source:      Optional[int] = field(default=None, compare=False)


@dataclass
class Node:
    """One machine on the network plus its traffic counters."""
    address:  int
    machine:  Machine
    sent:     int = 0
    received: int = 0

    @property
    def halted(self) -> bool:
        return self.machine.halted

    def is_idle(self) -> bool:
        if self.machine.halted:
            return False
        queue = self.machine.inputs
        starved = not queue or (len(queue) == 1 and queue[0] == IDLE_INPUT)
        return starved and self.machine.is_blocked_on_input()

    def deliver(self, x: int, y: int) -> None:
        self.machine.push_input(x)
        self.machine.push_input(y)
        self.received += 1


# ─────────────────────────────────────────────────────────────────────────────
# Monitor  (receives packets sent to MONITOR_ADDRESS)
# ─────────────────────────────────────────────────────────────────────────────

class Monitor:
    """
    Records every packet addressed to the monitor and every wake-up replay.

    ``record_replay`` reports whether the replayed ``y`` repeats the previous
    replay, which is the network's steady-state condition.
    """

    def __init__(self) -> None:
        self._history:  List[Tuple[int, int]] = []
        self._replayed: List[int] = []

    def record(self, packet: Packet) -> None:
        self._history.append((packet.x, packet.y))
        log.debug("monitor received (%d, %d) from node %s",
                  packet.x, packet.y, packet.source)

    def record_replay(self, y: int) -> bool:
        repeated = bool(self._replayed) and self._replayed[-1] == y
        self._replayed.append(y)
        return repeated

    @property
    def last(self) -> Optional[Tuple[int, int]]:
        return self._history[-1] if self._history else None

    @property
    def history(self) -> List[Tuple[int, int]]:
        return list(self._history)

    @property
    def replayed(self) -> List[int]:
        return list(self._replayed)

    def report(self) -> str:
        if not self._history:
            return "Monitor: no packets received."
        first_x, first_y = self._history[0]
        last_x, last_y = self._history[-1]
        lines = [
            "Monitor",
            f"  Packets received: {len(self._history)}",
            f"  First packet:     x={first_x} y={first_y}",
            f"  Last packet:      x={last_x} y={last_y}",
            f"  Wake-up replays:  {len(self._replayed)}",
        ]
        if self._replayed:
            lines.append(f"  Last replayed y:  {self._replayed[-1]}")
        return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Network
# ─────────────────────────────────────────────────────────────────────────────

class Network:
    """
    Owner of every node and of the monitor.

    Usage
    -----
    ::

        net = Network(program, size=50)
        first = net.first_monitor_packet()     # first packet sent to 255
        y = net.run()                          # steady-state monitor y
    """

    def __init__(self, program: Iterable[int], size: int = DEFAULT_NETWORK_SIZE, *,
                 max_ticks: Optional[int] = None, trace: bool = False):
        if not 1 <= size <= MONITOR_ADDRESS:
            raise ValueError(f"Network size must be in 1..{MONITOR_ADDRESS}, got {size}")
        snapshot = list(program)
        self.nodes: List[Node] = [
            Node(address, Machine(snapshot, inputs=[address], trace=trace,
                                  name=f"node{address}"))
            for address in range(size)
        ]
        self.monitor   = Monitor()
        self.max_ticks = max_ticks
        self.ticks     = 0

    # ── Routing ──────────────────────────────────────────────────────────────

    def send(self, address: int, x: int, y: int) -> None:
        """Append ``x, y`` to the input queue of node ``address``."""
        if not 0 <= address < len(self.nodes):
            raise RoutingError(f"No node at address {address} "
                               f"(network size {len(self.nodes)})")
        self.nodes[address].deliver(x, y)

    def _route(self, packet: Packet) -> None:
        if packet.destination == MONITOR_ADDRESS:
            self.monitor.record(packet)
            return
        log.debug("packet %s -> %d: (%d, %d)",
                  packet.source, packet.destination, packet.x, packet.y)
        self.send(packet.destination, packet.x, packet.y)

    # ── Scheduling ───────────────────────────────────────────────────────────

    def step_all(self) -> List[Packet]:
        """Resume every live node once.  Returns the packets routed this tick."""
        routed: List[Packet] = []
        for node in self.nodes:
            if node.halted:
                continue
            suspension = node.machine.resume()
            if suspension.signal is Signal.AWAITING_INPUT:
                node.machine.push_input(IDLE_INPUT)
            elif suspension.signal is Signal.OUTPUT:
                if len(node.machine.outputs) == 3:
                    destination, x, y = node.machine.drain_output()
                    packet = Packet(destination, x, y, source=node.address)
                    node.sent += 1
                    self._route(packet)
                    routed.append(packet)
            else:
                log.warning("node %d halted after %d steps",
                            node.address, node.machine.steps)
        self.ticks += 1
        return routed

    def active_nodes(self) -> List[Node]:
        return [node for node in self.nodes if not node.halted]

    def is_globally_idle(self) -> bool:
        return all(node.is_idle() for node in self.active_nodes())

    def monitor_history(self) -> List[Tuple[int, int]]:
        return self.monitor.history

    def _tick(self) -> None:
        if not self.active_nodes():
            raise NetworkStalledError("Every node has halted")
        if self.max_ticks is not None and self.ticks >= self.max_ticks:
            raise NetworkStalledError(f"Tick budget of {self.max_ticks} exhausted")
        self.step_all()

    # ── Drivers ──────────────────────────────────────────────────────────────

    def first_monitor_packet(self) -> Tuple[int, int]:
        """Run until the monitor has received a packet and return its ``(x, y)``."""
        while self.monitor.last is None:
            self._tick()
        return self.monitor.history[0]

    def run(self) -> int:
        """Run until the monitor detects a repeated wake-up ``y`` and return it."""
        while True:
            self._tick()
            if self.is_globally_idle():
                y = self._wake()
                if y is not None:
                    return y

    def _wake(self) -> Optional[int]:
        last = self.monitor.last
        if last is None:
            return None
        x, y = last
        if self.monitor.record_replay(y):
            log.info("steady state after %d ticks: y=%d repeated", self.ticks, y)
            return y
        log.info("network idle at tick %d; monitor replays (%d, %d) to node 0",
                 self.ticks, x, y)
        self.send(0, x, y)
        return None

    def __repr__(self) -> str:
        return (f"Network(size={len(self.nodes)}, ticks={self.ticks}, "
                f"active={len(self.active_nodes())})")
