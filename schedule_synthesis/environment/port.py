#     Copyright (C) 2024 Lisa Maile
#
#     lisa.maile@fau.de
#
#     This file is part of the DYnamic Reliable rEal-time Communication in Tsn (DYRECTsn) framework.
#
#     DYRECTsn is free software: you can redistribute it and/or modify
#     it under the terms of the GNU Lesser General Public License as published by
#     the Free Software Foundation, either version 3 of the License, or
#     (at your option) any later version.
#
#     DYRECTsn is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU Lesser General Public License for more details.
#
#     You should have received a copy of the GNU Lesser General Public License
#     along with DYRECTsn.  If not, see <http://www.gnu.org/licenses/>.
#
from decimal import Decimal
from typing import List, Optional

import numpy as np
import z3

from schedule_synthesis.analytics.z3_helper_functions import to_decimal, to_real
from schedule_synthesis.config import SYNTHESIS_CONFIG
from schedule_synthesis.logging import get_logger

logger = get_logger(__name__)


class Cycle:
    """
    transmission cycle of an outgoing port: a window of cycle_duration that repeats from first_cycle_start
    """

    def __init__(self, port_name: str, cycle_duration=Decimal('0')) -> None:
        self.cycle_duration = to_decimal(cycle_duration)
        assert self.cycle_duration >= 0, "cycle duration should be >=0, port: {}".format(port_name)
        self.first_cycle_start = z3.Real('{}CycleStart'.format(port_name))

    def __repr__(self):
        return "Cycle(start={}, duration={})".format(self.first_cycle_start, self.cycle_duration)


class Port:
    """
    class which contains the timing information of one outgoing port of a switch (speed, cycle, flow fragments)

    contains the functions that give the departure, arrival and scheduled time of every packet of a fragment
    leaving through this port
    """

    def __init__(self, name: str, connects_to: str, port_speed=None, time_to_travel=None, cycle_duration=Decimal('0'),
                 automated_application_period=False, defined_hypercycle_size=None) -> None:
        """
        :param name: Name of the port to identify it, e.g. 'switch1->dev2'.
        :param connects_to: Name of the node at the other end of the link (the next hop).
        :param port_speed: Bytes per microsecond.
        :param time_to_travel: Propagation delay of the link in microseconds.
        :param cycle_duration: Duration of the transmission cycle, 0 if it is decided elsewhere.
        :param automated_application_period: Whether the number of modeled packets follows the hypercycle.
        :param defined_hypercycle_size: Fixed hypercycle, otherwise the LCM of the registered periods is used.
        """
        self.name = name
        self.connects_to = connects_to
        self.port_speed = to_decimal(port_speed if port_speed is not None else SYNTHESIS_CONFIG.default_port_speed)
        self.time_to_travel = to_decimal(time_to_travel if time_to_travel is not None
                                         else SYNTHESIS_CONFIG.default_time_to_travel)
        assert self.port_speed > 0, "port speed should be >0, port: {}".format(name)
        assert self.time_to_travel >= 0, "time to travel should be >=0, port: {}".format(name)

        self.cycle = Cycle(name, cycle_duration)
        self.automated_application_period = automated_application_period
        self.defined_hypercycle_size = None if defined_hypercycle_size is None else to_decimal(defined_hypercycle_size)

        # filled while the flows are compiled
        self.list_of_periods: List[Decimal] = []
        self.fragments = []

    def __repr__(self):
        return "Port(name={}, connects_to={}, speed={}, cycle={})".format(self.name, self.connects_to,
                                                                           self.port_speed, self.cycle)

    def speed(self) -> Decimal:
        return self.port_speed

    def cycle_start(self) -> z3.ArithRef:
        return self.cycle.first_cycle_start

    def cycle_duration(self) -> Decimal:
        return self.cycle.cycle_duration

    def uses_automated_application_period(self) -> bool:
        return self.automated_application_period

    def register_periodicity(self, periodicity) -> None:
        periodicity = to_decimal(periodicity)
        if periodicity not in self.list_of_periods:
            self.list_of_periods.append(periodicity)

    def hypercycle_length(self) -> Decimal:
        """
        :return: the defined hypercycle, otherwise the least common multiple of all registered periods
        """
        if self.defined_hypercycle_size is not None:
            return self.defined_hypercycle_size

        assert len(self.list_of_periods) > 0, \
            "No periods registered at port {}, the hypercycle is undefined.".format(self.name)
        assert all(period == period.to_integral_value() for period in self.list_of_periods), \
            "Periods at port {} must be integral to derive the hypercycle: {}".format(self.name, self.list_of_periods)

        periods = np.array([int(period) for period in self.list_of_periods], dtype=np.int64)
        return Decimal(int(np.lcm.reduce(periods)))

    def transmission_time(self, packet_size) -> Decimal:
        return to_decimal(packet_size) / self.port_speed

    def add_fragment(self, fragment) -> None:
        self.fragments.append(fragment)

    # ----------------------------------------------------------------------------------------------------------------
    # ------------------------------------------  Per Packet Times  --------------------------------------------------
    # ----------------------------------------------------------------------------------------------------------------

    def departure_time(self, index: int, fragment) -> z3.ArithRef:
        return fragment.get_departure_time(index)

    def arrival_time(self, index: int, fragment) -> z3.ArithRef:
        return fragment.get_departure_time(index) + to_real(self.time_to_travel)

    def scheduled_time(self, index: int, fragment) -> z3.ArithRef:
        """
        the time the packet [index] of the fragment is transmitted through this port

        :param index: packet number
        :param fragment: fragment leaving through this port
        :return: the existing scheduled time or a new real variable for it
        """
        if index < len(fragment.scheduled_times):
            return fragment.scheduled_times[index]
        return z3.Real('{}ScheduledTime{}'.format(fragment.name, index))

    # ----------------------------------------------------------------------------------------------------------------
    # -------------------------------------------  Port Constraints  -------------------------------------------------
    # ----------------------------------------------------------------------------------------------------------------

    def to_constraints(self, solver: z3.Solver, max_priority: Optional[int] = None) -> None:
        """
        minimal timing model of the port:
            - the cycle starts at a non-negative time
            - a packet is scheduled only after it arrived and was transmitted
            - packets of one fragment leave in order
            - priorities are valid PCP values
            - transmissions of different flows do not overlap
        """
        if max_priority is None:
            max_priority = SYNTHESIS_CONFIG.max_priority

        solver.add(self.cycle_start() >= 0)

        for fragment in self.fragments:
            transmission = to_real(self.transmission_time(fragment.packet_size_value))
            for i in range(fragment.packet_count):
                solver.add(self.scheduled_time(i, fragment) >= self.arrival_time(i, fragment) + transmission)
                if i > 0:
                    solver.add(self.scheduled_time(i, fragment) >= self.scheduled_time(i - 1, fragment) + transmission)
            solver.add(fragment.priority >= 0, fragment.priority <= max_priority)

        for a in range(len(self.fragments)):
            for b in range(a + 1, len(self.fragments)):
                frag_a = self.fragments[a]
                frag_b = self.fragments[b]
                if frag_a.flow_name == frag_b.flow_name:
                    continue
                transmission_a = to_real(self.transmission_time(frag_a.packet_size_value))
                transmission_b = to_real(self.transmission_time(frag_b.packet_size_value))
                for i in range(frag_a.packet_count):
                    for j in range(frag_b.packet_count):
                        time_a = self.scheduled_time(i, frag_a)
                        time_b = self.scheduled_time(j, frag_b)
                        solver.add(z3.Or(time_a <= time_b - transmission_b, time_b <= time_a - transmission_a))

        logger.debug("Port {}: constraints added for {} fragments".format(self.name, len(self.fragments)))
