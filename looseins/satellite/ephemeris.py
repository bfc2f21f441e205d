# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Ephemeris storage, selection and validation"""

import logging
from typing import Dict, Iterator, List, Optional

from ..core.constants import (
    MAXDTOE_BDS, MAXDTOE_GPS, SYS_BDS, SYSTEMS, max_prn, sat_id
)
from ..core.data_structures import Ephemeris
from ..core.time import GNSSTime, timediff

logger = logging.getLogger(__name__)


def max_ephemeris_age(sys: int) -> float:
    """Validity window of a broadcast ephemeris (seconds)"""
    if sys == SYS_BDS:
        return MAXDTOE_BDS
    return MAXDTOE_GPS


def satellite_time(time: GNSSTime, sys: int) -> GNSSTime:
    """Express a receiver time in the time system of a constellation"""
    if sys == SYS_BDS:
        return time.convert_to('BDS')
    return time.convert_to('GPS')


def ephemeris_age(eph: Ephemeris, time: GNSSTime) -> float:
    """
    Age of an ephemeris at the given time, t - toe in seconds

    The week number is honoured when both sides carry one; otherwise
    the seconds-of-week difference is folded across the week boundary.
    """
    t = satellite_time(time, eph.sys)
    if eph.week > 0:
        return (t.week - eph.week) * 604800.0 + (t.tow - eph.toe)
    return timediff(t.tow, eph.toe)


def is_ephemeris_valid(eph: Ephemeris, time: GNSSTime) -> bool:
    """
    Check if ephemeris is healthy and within its validity window

    Parameters
    ----------
    eph : Ephemeris
        Ephemeris record to validate
    time : GNSSTime
        Time of interest

    Returns
    -------
    bool
        True if ephemeris is valid for the given time

    Notes
    -----
    System-specific validity periods:
    - GPS: 2 hours (7200 seconds)
    - BeiDou: 6 hours (21600 seconds)
    """
    if eph.health != 0:
        return False
    return abs(ephemeris_age(eph, time)) <= max_ephemeris_age(eph.sys)


class EphemerisTable:
    """
    Latest broadcast ephemeris per satellite.

    One slot per PRN and constellation, sized by the constellation's PRN
    capacity. A new message replaces the slot only when its reference time
    is newer, so the table never holds two records for the same satellite.

    Examples
    --------
    >>> table = EphemerisTable()
    >>> table.update(eph)
    >>> eph = table.select(SYS_GPS, 5, current_time)
    """

    def __init__(self):
        self._slots: Dict[int, List[Optional[Ephemeris]]] = {
            sys: [None] * (max_prn(sys) + 1) for sys in SYSTEMS
        }

    def update(self, eph: Ephemeris) -> bool:
        """
        Store an ephemeris if it is newer than the one held for its PRN

        Returns
        -------
        bool
            True when the slot was written
        """
        slots = self._slots.get(eph.sys)
        if slots is None or not 1 <= eph.prn < len(slots):
            logger.warning(f"Ephemeris for unsupported satellite sys={eph.sys} prn={eph.prn} ignored")
            return False

        current = slots[eph.prn]
        if current is not None and self._reference(eph) <= self._reference(current):
            return False

        slots[eph.prn] = eph
        logger.debug(f"Ephemeris {sat_id(eph.sys, eph.prn)} updated, toe={eph.toe:.0f}")
        return True

    @staticmethod
    def _reference(eph: Ephemeris) -> float:
        return eph.week * 604800.0 + eph.toe

    def get(self, sys: int, prn: int) -> Optional[Ephemeris]:
        """Latest ephemeris for a satellite regardless of age"""
        slots = self._slots.get(sys)
        if slots is None or not 1 <= prn < len(slots):
            return None
        return slots[prn]

    def select(self, sys: int, prn: int, time: GNSSTime) -> Optional[Ephemeris]:
        """Latest ephemeris for a satellite if it is valid at the given time"""
        eph = self.get(sys, prn)
        if eph is None or not is_ephemeris_valid(eph, time):
            return None
        return eph

    def __iter__(self) -> Iterator[Ephemeris]:
        for sys in SYSTEMS:
            for eph in self._slots[sys]:
                if eph is not None:
                    yield eph

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def clear(self):
        for sys in SYSTEMS:
            self._slots[sys] = [None] * (max_prn(sys) + 1)


__all__ = [
    'EphemerisTable', 'ephemeris_age', 'is_ephemeris_valid',
    'max_ephemeris_age', 'satellite_time',
]
