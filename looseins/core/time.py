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

"""GNSS Time Systems and Conversions"""

from datetime import datetime, timedelta
from typing import Union

from .constants import (
    BDT0, GPS_BDS_OFFSET, GPS_BDS_WEEK_OFFSET, GPST0, HALF_WEEK, WEEK_SECONDS
)

MJD_EPOCH = datetime(1858, 11, 17)
VALID_SYSTEMS = ('GPS', 'BDS')


class GNSSTime:
    """GNSS time as constellation week and seconds of week

    Seconds of week are normalized into [0, 604800) on construction.
    Times from different systems cannot be compared or subtracted;
    use ``convert_to`` first.
    """

    def __init__(self, week: int = 0, tow: float = 0.0, time_sys: str = 'GPS'):
        """
        Initialize GNSS time

        Parameters:
        -----------
        week : int
            Week number
        tow : float
            Time of week in seconds
        time_sys : str
            Time system ('GPS', 'BDS')
        """
        self.week = int(week)
        self.tow = float(tow)
        self.time_sys = time_sys.upper()

        if self.time_sys not in VALID_SYSTEMS:
            raise ValueError(f"Invalid time system: {time_sys}. Must be one of {list(VALID_SYSTEMS)}")

        # Normalize TOW to [0, 604800)
        while self.tow >= WEEK_SECONDS:
            self.week += 1
            self.tow -= WEEK_SECONDS
        while self.tow < 0:
            self.week -= 1
            self.tow += WEEK_SECONDS

    @staticmethod
    def _reference_epoch(time_sys: str) -> datetime:
        if time_sys == 'GPS':
            return datetime(*GPST0)
        elif time_sys == 'BDS':
            return datetime(*BDT0)
        raise ValueError(f"Unknown time system: {time_sys}")

    @classmethod
    def from_datetime(cls, dt: datetime, time_sys: str = 'GPS') -> 'GNSSTime':
        """Create GNSSTime from a civil datetime expressed in the same time system"""
        delta = dt - cls._reference_epoch(time_sys.upper())
        weeks = delta.days // 7
        tow = (delta.days % 7) * 86400 + delta.seconds + delta.microseconds * 1e-6
        return cls(weeks, tow, time_sys)

    @classmethod
    def from_seconds(cls, seconds: float, time_sys: str = 'GPS') -> 'GNSSTime':
        """Create GNSSTime from continuous seconds since the system epoch"""
        week = int(seconds // WEEK_SECONDS)
        tow = seconds - week * WEEK_SECONDS
        return cls(week, tow, time_sys)

    @classmethod
    def from_mjd(cls, mjd: float, time_sys: str = 'GPS') -> 'GNSSTime':
        """Create GNSSTime from Modified Julian Day"""
        return cls.from_datetime(MJD_EPOCH + timedelta(days=mjd), time_sys)

    def to_datetime(self) -> datetime:
        """Convert to civil datetime in the same time system"""
        return self._reference_epoch(self.time_sys) + timedelta(weeks=self.week, seconds=self.tow)

    def to_mjd(self) -> float:
        """Convert to Modified Julian Day"""
        delta = self.to_datetime() - MJD_EPOCH
        return delta.total_seconds() / 86400.0

    def to_seconds(self) -> float:
        """Continuous seconds since the system epoch"""
        return self.week * WEEK_SECONDS + self.tow

    def add_seconds(self, seconds: float) -> 'GNSSTime':
        """Add seconds to time"""
        return GNSSTime(self.week, self.tow + seconds, self.time_sys)

    def __add__(self, seconds: float) -> 'GNSSTime':
        if isinstance(seconds, (int, float)):
            return self.add_seconds(seconds)
        raise TypeError(f"Cannot add {type(seconds)} to GNSSTime")

    def __sub__(self, other: Union['GNSSTime', float]) -> Union[float, 'GNSSTime']:
        """Subtract time (returns seconds) or seconds (returns time)"""
        if isinstance(other, GNSSTime):
            self._check_system(other)
            return (self.week - other.week) * WEEK_SECONDS + (self.tow - other.tow)
        elif isinstance(other, (int, float)):
            return self.add_seconds(-other)
        raise TypeError(f"Cannot subtract {type(other)} from GNSSTime")

    def _check_system(self, other: 'GNSSTime'):
        if self.time_sys != other.time_sys:
            raise ValueError(f"Cannot combine times with different systems: {self.time_sys} and {other.time_sys}")

    def __lt__(self, other: 'GNSSTime') -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self - other < 0.0

    def __le__(self, other: 'GNSSTime') -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self - other <= 0.0

    def __gt__(self, other: 'GNSSTime') -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self - other > 0.0

    def __ge__(self, other: 'GNSSTime') -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self - other >= 0.0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self.time_sys == other.time_sys and self.week == other.week and abs(self.tow - other.tow) < 1e-9

    def __hash__(self):
        return hash((self.time_sys, self.week, round(self.tow, 6)))

    def __str__(self):
        return f"{self.time_sys} Week: {self.week}, TOW: {self.tow:.3f}"

    def __repr__(self):
        return f"GNSSTime({self.week}, {self.tow}, '{self.time_sys}')"

    def convert_to(self, target_sys: str) -> 'GNSSTime':
        """Convert between GPS time and BeiDou time

        BDT started at GPST week 1356, second 14, so
        BDT week = GPST week - 1356 and BDT = GPST - 14 s.
        """
        target_sys = target_sys.upper()
        if target_sys not in VALID_SYSTEMS:
            raise ValueError(f"Conversion to {target_sys} not implemented")
        if self.time_sys == target_sys:
            return self.copy()

        if self.time_sys == 'GPS':
            return GNSSTime(self.week - GPS_BDS_WEEK_OFFSET, self.tow - GPS_BDS_OFFSET, 'BDS')
        return GNSSTime(self.week + GPS_BDS_WEEK_OFFSET, self.tow + GPS_BDS_OFFSET, 'GPS')

    def copy(self) -> 'GNSSTime':
        """Create a copy of this time instance"""
        return GNSSTime(self.week, self.tow, self.time_sys)


def timediff(t1: float, t2: float) -> float:
    """Seconds-of-week difference t1 - t2 with week rollover

    The result is folded into [-302400, 302400] so that times on either
    side of a week boundary compare correctly.
    """
    dt = t1 - t2
    if dt > HALF_WEEK:
        dt -= WEEK_SECONDS
    elif dt < -HALF_WEEK:
        dt += WEEK_SECONDS
    return dt


def gps_seconds_to_week_tow(gps_seconds: float) -> tuple:
    """
    Convert continuous GPS seconds to (week, time of week)

    Parameters:
    -----------
    gps_seconds : float
        Seconds since the GPS epoch

    Returns:
    --------
    tuple
        (week, tow)
    """
    week = int(gps_seconds // WEEK_SECONDS)
    return week, gps_seconds - week * WEEK_SECONDS


def datetime2mjd(dt: datetime) -> float:
    """Civil datetime to Modified Julian Day"""
    return (dt - MJD_EPOCH).total_seconds() / 86400.0


def mjd2datetime(mjd: float) -> datetime:
    """Modified Julian Day to civil datetime"""
    return MJD_EPOCH + timedelta(days=mjd)
