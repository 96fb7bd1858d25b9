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
"""Configuration for the schedule synthesis components."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class SynthesisConfig:
    """Defaults used while compiling flows into constraints.

    All times are microseconds, sizes are bytes and speeds are bytes per microsecond.
    """

    # Packets modeled per fragment when the outgoing port has no automated application period
    packet_upper_bound_range: int = 5

    # 125 bytes/us = 1 Gbit/s
    default_port_speed: Decimal = Decimal('125')

    # Propagation delay of a link
    default_time_to_travel: Decimal = Decimal('1')

    # Highest PCP value, priorities are 0..max_priority
    max_priority: int = 7

    def is_fixed_priority(self, priority) -> bool:
        """A priority is fixed if it is an integer between 0 and max_priority."""
        return priority is not None and 0 <= priority <= self.max_priority


# Global configuration instance
SYNTHESIS_CONFIG = SynthesisConfig()
