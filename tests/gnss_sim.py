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

"""Synthetic GPS/BeiDou sky and noise-free observations shared by the tests"""

import numpy as np
from numpy.linalg import norm

from looseins.coordinate.transforms import ecef2enu_dcm, llh2ecef
from looseins.core.constants import CLIGHT, D2R, OMGE, OMGE_BDS, SYS_BDS, SYS_GPS, sys_wavelengths
from looseins.core.data_structures import Ephemeris, EpochObservation, SatelliteObservation
from looseins.core.time import GNSSTime
from looseins.satellite.ephemeris import EphemerisTable, satellite_time
from looseins.satellite.satellite_position import compute_satellite_state

EPOCH = GNSSTime(2200, 345600.0)
SITE_BLH = np.array([35.0 * D2R, 139.0 * D2R, 50.0])

GPS_SQRT_A = np.sqrt(26559.7e3)
BDS_SQRT_A = np.sqrt(27906.1e3)

# (prn, azimuth deg, elevation deg) seen from SITE_BLH at EPOCH
GPS_SKY = [(1, 0.0, 80.0), (5, 45.0, 50.0), (8, 120.0, 40.0), (12, 200.0, 35.0),
           (15, 280.0, 45.0), (18, 330.0, 28.0), (21, 160.0, 62.0), (24, 80.0, 30.0)]
BDS_SKY = [(19, 20.0, 55.0), (22, 140.0, 45.0), (27, 250.0, 38.0), (30, 310.0, 65.0)]


def make_ephemeris(sys, prn, azimuth, elevation, epoch=EPOCH, site_blh=SITE_BLH, af0=1e-5):
    """Circular orbit ephemeris placing a satellite at the given azimuth/elevation"""
    sqrt_a = BDS_SQRT_A if sys == SYS_BDS else GPS_SQRT_A
    A = sqrt_a ** 2
    az, el = azimuth * D2R, elevation * D2R

    r = llh2ecef(site_blh)
    enu = np.array([np.cos(el) * np.sin(az), np.cos(el) * np.cos(az), np.sin(el)])
    e = ecef2enu_dcm(site_blh).T @ enu
    b = r @ e
    rho = -b + np.sqrt(b * b - (r @ r - A * A))
    p = (r + rho * e) / A

    inc = 55.0 * D2R
    if abs(p[2]) > np.sin(inc) - 0.02:
        inc = 80.0 * D2R
    u = np.arcsin(p[2] / np.sin(inc))
    node = np.arctan2(p[1], p[0]) - np.arctan2(np.sin(u) * np.cos(inc), np.cos(u))

    t = satellite_time(epoch, sys)
    omge = OMGE_BDS if sys == SYS_BDS else OMGE
    return Ephemeris(sys=sys, prn=prn, week=t.week, toe=t.tow, toc=t.tow,
                     sqrt_a=sqrt_a, m0=u, ecc=0.0, omega=0.0,
                     omega0=node + omge * t.tow, i0=inc, af0=af0)


def make_table(gps=GPS_SKY, bds=(), epoch=EPOCH):
    table = EphemerisTable()
    for sys, sky in ((SYS_GPS, gps), (SYS_BDS, bds)):
        for prn, az, el in sky:
            table.update(make_ephemeris(sys, prn, az, el, epoch))
    return table


def random_ambiguities(table, seed=0):
    rng = np.random.default_rng(seed)
    return {eph.key: rng.integers(-10000, 10000, 2).astype(float) for eph in table}


def simulate_epoch(table, receiver_xyz, time=EPOCH, clock=3e-4, ambiguities=None,
                   troposphere=True, keys=None):
    """
    Noise-free dual-frequency observations of a static receiver

    Code equals geometric range plus receiver and satellite clock terms and,
    optionally, the slant troposphere. Phase adds integer ambiguities; no
    ionosphere is applied.
    """
    ambiguities = ambiguities or {}
    observations = []
    for eph in table:
        if keys is not None and eph.key not in keys:
            continue
        P = 2.2e7
        for _ in range(4):
            state = compute_satellite_state(time, eph, P, receiver_xyz)
            rho = norm(state.position - receiver_xyz)
            P = rho + CLIGHT * (clock - state.clock_bias)
            if troposphere:
                P += state.trop_delay
        state = compute_satellite_state(time, eph, P, receiver_xyz)

        lams = np.array(sys_wavelengths(eph.sys))
        N = ambiguities.get(eph.key, np.zeros(2))
        e = (state.position - receiver_xyz) / norm(state.position - receiver_xyz)
        rate = e @ state.velocity - CLIGHT * state.clock_drift
        observations.append(SatelliteObservation(
            eph.sys, eph.prn,
            P=[P, P],
            L=P / lams + N,
            D=-rate / lams,
        ))
    return EpochObservation(time, observations)


def site_xyz():
    return llh2ecef(SITE_BLH)
