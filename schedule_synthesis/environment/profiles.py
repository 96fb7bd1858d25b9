#     Copyright (C) 2024 Lisa Maile
#
#     lisa.maile@fau.de
#
#     This file is part of the DYnamic Reliable rEal-time Communication in Tsn (DYRECTsn) framework.
#
#     DYRECTsn is free software: you can redistribute it and/or modify
#     it under the terms of the GNU General Public License as published by
#     the Free Software Foundation, either version 3 of the License, or
#     (at your option) any later version.
#
#     DYRECTsn is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU General Public License for more details.
#
#     You should have received a copy of the GNU General Public License
#     along with DYRECTsn.  If not, see <http://www.gnu.org/licenses/>.
#
from decimal import Decimal

# Periodicity, First sending time, Packet size, Max. latency (microseconds and bytes)
profile1 = (Decimal('250'), Decimal('0'), Decimal('128'), Decimal('250'))
profile2 = (Decimal('500'), Decimal('0'), Decimal('256'), Decimal('500'))
profile3 = (Decimal('1000'), Decimal('0'), Decimal('512'), Decimal('1000'))
profile4 = (Decimal('2000'), Decimal('0'), Decimal('1024'), Decimal('2000'))
profile5 = (Decimal('4000'), Decimal('0'), Decimal('1500'), Decimal('4000'))

profiles = [profile1, profile2, profile3, profile4, profile5]
profile_names = ['profile1', 'profile2', 'profile3', 'profile4', 'profile5']

default_profile = profile3


def get_profile(name):
    """
    :param name: one of profile_names
    :return: (periodicity, first sending time, packet size, max. latency)
    """
    assert name in profile_names, "Unknown profile {}, use one of {}".format(name, profile_names)
    return profiles[profile_names.index(name)]
