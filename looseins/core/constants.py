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

"""GNSS/INS constants and system parameters"""

import numpy as np

# Physical Constants
CLIGHT = 299792458.0  # speed of light (m/s)

# GPS frequencies
FREQ_L1 = 1.57542E9   # L1 frequency (Hz)
FREQ_L2 = 1.22760E9   # L2 frequency (Hz)

# BeiDou frequencies
FREQ_B1I = 1.561098E9  # BeiDou B1I frequency (Hz)
FREQ_B3 = 1.26852E9    # BeiDou B3 frequency (Hz)

# GNSS System IDs
SYS_NONE = 0x00   # unknown
SYS_GPS = 0x01    # GPS
SYS_BDS = 0x08    # BeiDou
SYS_ALL = SYS_GPS | SYS_BDS

# Constellations handled by the pipeline, in clock-column order
SYSTEMS = (SYS_GPS, SYS_BDS)

# Capacity of the per-constellation tables (indexed by PRN)
MAX_GPS_PRN = 32
MAX_BDS_PRN = 63
MAX_CHANNEL = 36   # max satellites tracked by one receiver in an epoch

# Time System Parameters
GPST0 = [1980, 1, 6, 0, 0, 0]  # GPS time reference epoch
BDT0 = [2006, 1, 1, 0, 0, 0]   # BeiDou time reference epoch
WEEK_SECONDS = 604800.0
HALF_WEEK = 302400.0
GPS_BDS_WEEK_OFFSET = 1356     # BDT week = GPST week - 1356
GPS_BDS_OFFSET = 14.0          # BDT = GPST - 14 s

# Earth Parameters (WGS84)
RE_WGS84 = 6378137.0           # earth semimajor axis (m)
FE_WGS84 = 1.0 / 298.257223563 # earth flattening
E2_WGS84 = 0.00669437999013    # first eccentricity squared
OMGE = 7.2921151467E-5         # earth angular velocity, GPS ICD (rad/s)
OMGE_BDS = 7.292115E-5         # earth angular velocity, BDS ICD (rad/s)
WIE = 7.292115E-5              # earth angular velocity used by the mechanization (rad/s)

# System-specific gravitational constants
MU_GPS = 3.9860050E14          # GPS gravitational constant
MU_BDS = 3.986004418E14        # BeiDou gravitational constant

# Relativistic clock correction factor -2*sqrt(mu)/c^2
F_REL_GPS = -4.442807633E-10
F_REL_BDS = -4.442807309E-10

# Normal gravity model g(B, h)
GRAVITY_G0 = 9.7803267715
GRAVITY_A1 = 0.0052790414
GRAVITY_A2 = 0.0000232718
GRAVITY_B1 = -3.087691891E-6
GRAVITY_B2 = 4.3977311E-10
GRAVITY_B3 = 7.211E-13

# Unit conversions
R2D = 180.0 / np.pi            # radians to degrees
D2R = np.pi / 180.0            # degrees to radians

# Ephemeris validity windows (s)
MAXDTOE_GPS = 7200.0
MAXDTOE_BDS = 21600.0

# Solution Status
SOLQ_NONE = 0       # no solution
SOLQ_FIX = 1        # fixed solution
SOLQ_FLOAT = 2      # float solution
SOLQ_SINGLE = 5     # single point positioning


def sys2char(sys: int) -> str:
    """Convert system ID to RINEX system character"""
    if sys == SYS_GPS:
        return 'G'
    elif sys == SYS_BDS:
        return 'C'
    return '?'


def char2sys(c: str) -> int:
    """Convert RINEX system character to system ID"""
    if c == 'G':
        return SYS_GPS
    elif c == 'C':
        return SYS_BDS
    return SYS_NONE


def max_prn(sys: int) -> int:
    """Table capacity for a constellation"""
    if sys == SYS_GPS:
        return MAX_GPS_PRN
    elif sys == SYS_BDS:
        return MAX_BDS_PRN
    return 0


def sys_frequencies(sys: int) -> tuple:
    """Carrier frequencies (f1, f2) in Hz for a constellation"""
    if sys == SYS_GPS:
        return FREQ_L1, FREQ_L2
    elif sys == SYS_BDS:
        return FREQ_B1I, FREQ_B3
    return 0.0, 0.0


def sys_wavelengths(sys: int) -> tuple:
    """Carrier wavelengths (lam1, lam2) in metres for a constellation"""
    f1, f2 = sys_frequencies(sys)
    if f1 <= 0.0 or f2 <= 0.0:
        return 0.0, 0.0
    return CLIGHT / f1, CLIGHT / f2


def is_bds_geo(prn: int) -> bool:
    """BeiDou GEO satellites (C01-C05, C59-C63)"""
    return prn <= 5 or prn >= 59


def sat_id(sys: int, prn: int) -> str:
    """Satellite id string such as G05 or C12"""
    return f"{sys2char(sys)}{prn:02d}"
