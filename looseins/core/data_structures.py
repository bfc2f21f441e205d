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

"""Core data structures for GNSS processing"""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, Optional, Tuple

import numpy as np

from .constants import (
    SOLQ_NONE, SYS_BDS, is_bds_geo, sat_id, sys_wavelengths
)
from .time import GNSSTime

SatKey = Tuple[int, int]  # (system, prn)


def _vec(values, n: int) -> np.ndarray:
    arr = np.asarray(values, dtype=float).reshape(-1)
    if arr.size != n:
        raise ValueError(f"Expected {n} values, got {arr.size}")
    return arr


@dataclass(frozen=True, eq=False)
class SatelliteObservation:
    """Dual-frequency observation of one satellite at one epoch.

    Attributes
    ----------
    sys : int
        Satellite system ID (SYS_GPS or SYS_BDS)
    prn : int
        PRN number within the constellation
    P : np.ndarray
        Pseudorange on frequency 1 and 2 in meters, shape (2,)
    L : np.ndarray
        Carrier phase on frequency 1 and 2 in cycles, shape (2,)
    D : np.ndarray
        Doppler on frequency 1 and 2 in Hz, shape (2,)
    valid : bool
        Both frequencies carry code and phase. Derived from the arrays
        when not given explicitly.

    Notes
    -----
    Zero values indicate no observation for that band.
    """
    sys: int
    prn: int
    P: np.ndarray = field(default_factory=lambda: np.zeros(2))
    L: np.ndarray = field(default_factory=lambda: np.zeros(2))
    D: np.ndarray = field(default_factory=lambda: np.zeros(2))
    valid: Optional[bool] = None

    def __post_init__(self):
        object.__setattr__(self, 'P', _vec(self.P, 2))
        object.__setattr__(self, 'L', _vec(self.L, 2))
        object.__setattr__(self, 'D', _vec(self.D, 2))
        if self.valid is None:
            usable = bool(np.all(self.P > 0.0) and np.all(self.L != 0.0))
            object.__setattr__(self, 'valid', usable)

    @property
    def key(self) -> SatKey:
        return (self.sys, self.prn)

    @property
    def wavelengths(self) -> Tuple[float, float]:
        return sys_wavelengths(self.sys)

    def __repr__(self):
        return f"SatelliteObservation({sat_id(self.sys, self.prn)}, valid={self.valid})"


@dataclass(frozen=True, eq=False)
class EpochObservation:
    """All satellite observations of one receiver at one epoch.

    The collection is immutable; screening steps return modified copies.
    """
    time: GNSSTime
    observations: Tuple[SatelliteObservation, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'observations', tuple(self.observations))

    def __len__(self) -> int:
        return len(self.observations)

    def __iter__(self) -> Iterator[SatelliteObservation]:
        return iter(self.observations)

    def __getitem__(self, index: int) -> SatelliteObservation:
        return self.observations[index]

    def find(self, sys: int, prn: int) -> Optional[int]:
        """Index of a satellite in this epoch, or None"""
        for i, obs in enumerate(self.observations):
            if obs.sys == sys and obs.prn == prn:
                return i
        return None

    def with_invalid(self, keys: Iterable[SatKey]) -> 'EpochObservation':
        """Copy of the epoch with the given satellites marked invalid"""
        keys = set(keys)
        if not keys:
            return self
        obs = tuple(replace(o, valid=False) if o.key in keys else o
                    for o in self.observations)
        return EpochObservation(self.time, obs)

    @property
    def systems(self) -> Tuple[int, ...]:
        return tuple(sorted({o.sys for o in self.observations}))


@dataclass(frozen=True)
class Ephemeris:
    """Broadcast Keplerian ephemeris for GPS or BeiDou.

    Attributes
    ----------
    sys, prn : int
        Constellation and PRN
    health : int
        SV health, 0 means healthy
    week : int
        Week of toe in the satellite's own time system
    toe, toc : float
        Ephemeris and clock reference times (seconds of week)
    sqrt_a : float
        Square root of the semi-major axis (m^0.5)
    delta_n, m0, ecc, omega, omega0, omega_dot, i0, idot : float
        Keplerian elements and rates (rad, rad/s)
    cuc, cus, crc, crs, cic, cis : float
        Harmonic correction amplitudes
    af0, af1, af2 : float
        Clock polynomial (s, s/s, s/s^2)
    tgd : tuple
        Group delays (s); BDS carries TGD1 (B1) and TGD2 (B2)
    is_geo : bool
        BeiDou GEO satellite, derived from the PRN when not given
    """
    sys: int
    prn: int
    week: int = 0
    toe: float = 0.0
    toc: float = 0.0
    health: int = 0
    sqrt_a: float = 0.0
    delta_n: float = 0.0
    m0: float = 0.0
    ecc: float = 0.0
    omega: float = 0.0
    omega0: float = 0.0
    omega_dot: float = 0.0
    i0: float = 0.0
    idot: float = 0.0
    cuc: float = 0.0
    cus: float = 0.0
    crc: float = 0.0
    crs: float = 0.0
    cic: float = 0.0
    cis: float = 0.0
    af0: float = 0.0
    af1: float = 0.0
    af2: float = 0.0
    tgd: Tuple[float, float] = (0.0, 0.0)
    is_geo: Optional[bool] = None

    def __post_init__(self):
        if self.is_geo is None:
            object.__setattr__(self, 'is_geo', self.sys == SYS_BDS and is_bds_geo(self.prn))

    @property
    def key(self) -> SatKey:
        return (self.sys, self.prn)

    @property
    def A(self) -> float:
        return self.sqrt_a ** 2


@dataclass(frozen=True, eq=False)
class SatelliteState:
    """Satellite position/velocity/clock at transmission time, valid for one epoch.

    Attributes
    ----------
    position, velocity : np.ndarray
        ECEF position (m) and velocity (m/s), rotated to the reception epoch frame
    clock_bias : float
        Satellite clock bias (s), relativity included
    clock_drift : float
        Satellite clock drift (s/s)
    elevation, azimuth : float
        Angles from the approximate receiver position (rad)
    trop_delay : float
        Slant tropospheric delay (m)
    tgd : float
        Broadcast group delay of frequency 1 (s)
    stale : bool
        Ephemeris age exceeds the validity window
    valid : bool
        Usable in positioning (healthy, fresh and finite)
    """
    sys: int
    prn: int
    position: np.ndarray
    velocity: np.ndarray
    clock_bias: float = 0.0
    clock_drift: float = 0.0
    elevation: float = np.pi / 2
    azimuth: float = 0.0
    trop_delay: float = 0.0
    tgd: float = 0.0
    stale: bool = False
    valid: bool = True

    @property
    def key(self) -> SatKey:
        return (self.sys, self.prn)


@dataclass(frozen=True)
class Combination:
    """Geometry-free / Melbourne-Wubbena / ionosphere-free record for one satellite.

    ``mw`` is the raw value of this epoch and ``mw_smoothed`` the running mean
    over ``count`` consecutive epochs.
    """
    sys: int
    prn: int
    gf: float           # L1 - L2 phase in meters
    mw: float           # wide-lane cycles
    mw_smoothed: float  # running mean of mw
    if_phase: float     # ionosphere-free phase (m)
    if_code: float      # ionosphere-free code (m)
    count: int = 1

    @property
    def key(self) -> SatKey:
        return (self.sys, self.prn)


@dataclass(frozen=True, eq=False)
class SppSolution:
    """Single point positioning result of one receiver at one epoch.

    Attributes
    ----------
    time : GNSSTime
        Reception time
    xyz, blh : np.ndarray
        ECEF position (m) and geodetic position (rad, rad, m)
    clock_bias : dict
        Receiver clock bias per constellation (m)
    velocity : np.ndarray or None
        ECEF velocity (m/s), None when no Doppler was available
    clock_drift : float
        Receiver clock drift (m/s)
    pdop : float
        Position dilution of precision
    sigma0 : float
        A-posteriori unit-weight standard deviation (m)
    qr : np.ndarray
        Position cofactor matrix (3x3)
    used : tuple
        Satellites used in the final iteration
    combinations : dict
        GF/MW/IF records of this epoch keyed by (sys, prn)
    satellites : dict
        Satellite states evaluated at the final position
    """
    time: GNSSTime
    xyz: np.ndarray
    blh: np.ndarray
    clock_bias: Dict[int, float]
    velocity: Optional[np.ndarray] = None
    clock_drift: float = 0.0
    pdop: float = 0.0
    sigma0: float = 0.0
    qr: np.ndarray = field(default_factory=lambda: np.eye(3))
    used: Tuple[SatKey, ...] = ()
    combinations: Dict[SatKey, Combination] = field(default_factory=dict)
    satellites: Dict[SatKey, SatelliteState] = field(default_factory=dict)

    @property
    def ns(self) -> int:
        return len(self.used)


@dataclass(frozen=True, eq=False)
class SingleDifference:
    """Between-receiver (rover minus base) difference of one satellite.

    The indices refer to the two source epochs, which must outlive this record.
    """
    sys: int
    prn: int
    psr: np.ndarray      # code difference on f1, f2 (m)
    cp: np.ndarray       # phase difference on f1, f2 (cycles)
    rover_index: int
    base_index: int

    @property
    def key(self) -> SatKey:
        return (self.sys, self.prn)


@dataclass(frozen=True, eq=False)
class DoubleDifference:
    """Satellite-pair difference of two single differences.

    ``values`` holds [L1 (cycles), L2 (cycles), P1 (m), P2 (m)].
    """
    sys: int
    prn: int
    ref_prn: int
    values: np.ndarray
    rover_index: int
    base_index: int
    ref_rover_index: int
    ref_base_index: int

    @property
    def key(self) -> SatKey:
        return (self.sys, self.prn)


@dataclass(frozen=True, eq=False)
class DoubleDifferenceSet:
    """Double differences of one epoch with the reference satellite per constellation"""
    time: GNSSTime
    records: Tuple[DoubleDifference, ...] = ()
    reference: Dict[int, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.records)

    def count(self, sys: int) -> int:
        return sum(1 for r in self.records if r.sys == sys)

    @property
    def systems(self) -> Tuple[int, ...]:
        return tuple(sorted(self.reference))


@dataclass(frozen=True, eq=False)
class RtkSolution:
    """Relative positioning result of one epoch.

    Attributes
    ----------
    quality : int
        SOLQ_NONE, SOLQ_SINGLE, SOLQ_FLOAT or SOLQ_FIX
    position : np.ndarray
        Rover ECEF position (m)
    baseline : np.ndarray
        Rover minus base ECEF vector (m)
    ratio : float
        Second-best over best integer candidate residual
    fixed_ambiguities, float_ambiguities : np.ndarray
        DD ambiguities on L1 then L2 (cycles)
    qr : np.ndarray
        Baseline covariance (3x3)
    """
    time: GNSSTime
    quality: int = SOLQ_NONE
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    baseline: np.ndarray = field(default_factory=lambda: np.zeros(3))
    ratio: float = 0.0
    fixed_ambiguities: Optional[np.ndarray] = None
    float_ambiguities: Optional[np.ndarray] = None
    qr: np.ndarray = field(default_factory=lambda: np.eye(3))
    ns: int = 0
    success_rate: float = 0.0

    @property
    def valid(self) -> bool:
        return self.quality != SOLQ_NONE
