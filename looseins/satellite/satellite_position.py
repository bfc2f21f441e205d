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

"""Satellite position, velocity and clock from broadcast ephemeris

Implements the GPS IS-GPS-200 and BeiDou ICD user algorithms, including
the BeiDou GEO frame rotation, and evaluates every satellite at its
signal transmission time.
"""

import logging
from typing import Dict, Optional, Tuple

import numpy as np
from numpy.linalg import norm

from ..coordinate.transforms import ecef2llh
from ..core.constants import (
    CLIGHT, D2R, F_REL_BDS, F_REL_GPS, MU_BDS, MU_GPS, OMGE, OMGE_BDS, SYS_BDS,
    sat_id
)
from ..core.data_structures import (
    EpochObservation, Ephemeris, SatelliteObservation, SatelliteState, SatKey
)
from ..core.time import GNSSTime, timediff
from ..gnss.geometry import geodist, satazel
from ..gnss.troposphere import hopfield_model
from .ephemeris import EphemerisTable, ephemeris_age, is_ephemeris_valid, satellite_time

logger = logging.getLogger(__name__)

KEPLER_ITERATIONS = 10
TRANSMIT_ITERATIONS = 2
NOMINAL_TRANSIT = 0.075   # s, used when no pseudorange is available
MIN_RECEIVER_NORM = 1.0e3  # receiver positions closer to the geocentre are unknown


def _system_constants(sys: int) -> Tuple[float, float, float]:
    """(mu, earth rotation rate, relativistic factor) of a constellation"""
    if sys == SYS_BDS:
        return MU_BDS, OMGE_BDS, F_REL_BDS
    return MU_GPS, OMGE, F_REL_GPS


def _clock_age(t: GNSSTime, eph: Ephemeris) -> float:
    return timediff(satellite_time(t, eph.sys).tow, eph.toc)


def eph2clk(t: GNSSTime, eph: Ephemeris) -> float:
    """
    Satellite clock bias from the broadcast polynomial (no relativity)

    The polynomial argument is corrected by its own value once, as the
    clock bias shifts the satellite's notion of time.
    """
    dt = _clock_age(t, eph)
    for _ in range(2):
        dt_sv = eph.af0 + eph.af1 * dt + eph.af2 * dt * dt
        dt = _clock_age(t, eph) - dt_sv
    return eph.af0 + eph.af1 * dt + eph.af2 * dt * dt


def _solve_kepler(M: float, ecc: float) -> float:
    """Eccentric anomaly by a fixed count of Newton steps; the last iterate is kept"""
    E = M
    for _ in range(KEPLER_ITERATIONS):
        E -= (E - ecc * np.sin(E) - M) / (1.0 - ecc * np.cos(E))
    return E


def eph2pos(t: GNSSTime, eph: Ephemeris) -> Tuple[np.ndarray, np.ndarray, float, float]:
    """
    Satellite ECEF position/velocity and clock at a transmission time

    Parameters
    ----------
    t : GNSSTime
        Signal transmission time (any system, converted internally)
    eph : Ephemeris
        Broadcast ephemeris of the satellite

    Returns
    -------
    pos : np.ndarray
        ECEF position at t (m), in the Earth-fixed frame of time t
    vel : np.ndarray
        ECEF velocity (m/s)
    dts : float
        Clock bias including the relativistic term (s)
    ddts : float
        Clock drift (s/s)
    """
    mu, omge, f_rel = _system_constants(eph.sys)

    tk = ephemeris_age(eph, t)
    A = eph.A
    n = np.sqrt(mu / A**3) + eph.delta_n
    M = eph.m0 + n * tk
    E = _solve_kepler(M, eph.ecc)

    sinE, cosE = np.sin(E), np.cos(E)
    one_ecosE = 1.0 - eph.ecc * cosE
    Edot = n / one_ecosE
    sq1e2 = np.sqrt(1.0 - eph.ecc**2)

    nu = np.arctan2(sq1e2 * sinE, cosE - eph.ecc)
    phi = nu + eph.omega
    sin2p, cos2p = np.sin(2.0 * phi), np.cos(2.0 * phi)

    u = phi + eph.cus * sin2p + eph.cuc * cos2p
    r = A * one_ecosE + eph.crs * sin2p + eph.crc * cos2p
    i = eph.i0 + eph.idot * tk + eph.cis * sin2p + eph.cic * cos2p

    phidot = sq1e2 * Edot / one_ecosE
    udot = phidot * (1.0 + 2.0 * (eph.cus * cos2p - eph.cuc * sin2p))
    rdot = A * eph.ecc * sinE * Edot + 2.0 * phidot * (eph.crs * cos2p - eph.crc * sin2p)
    idot = eph.idot + 2.0 * phidot * (eph.cis * cos2p - eph.cic * sin2p)

    cosu, sinu = np.cos(u), np.sin(u)
    xp, yp = r * cosu, r * sinu
    xpdot = rdot * cosu - r * udot * sinu
    ypdot = rdot * sinu + r * udot * cosu

    if eph.is_geo:
        # GEO orbits are broadcast in an inertial-like frame
        Omega = eph.omega0 + eph.omega_dot * tk - omge * eph.toe
        Omegadot = eph.omega_dot
    else:
        Omega = eph.omega0 + (eph.omega_dot - omge) * tk - omge * eph.toe
        Omegadot = eph.omega_dot - omge

    cosO, sinO = np.cos(Omega), np.sin(Omega)
    cosi, sini = np.cos(i), np.sin(i)

    pos = np.array([xp * cosO - yp * cosi * sinO,
                    xp * sinO + yp * cosi * cosO,
                    yp * sini])
    vel = np.array([xpdot * cosO - ypdot * cosi * sinO + yp * sini * sinO * idot - pos[1] * Omegadot,
                    xpdot * sinO + ypdot * cosi * cosO - yp * sini * cosO * idot + pos[0] * Omegadot,
                    ypdot * sini + yp * cosi * idot])

    if eph.is_geo:
        pos, vel = _geo_to_ecef(pos, vel, omge * tk, omge)

    dt = _clock_age(t, eph)
    dts = eph2clk(t, eph) + f_rel * eph.ecc * eph.sqrt_a * sinE
    ddts = eph.af1 + 2.0 * eph.af2 * dt + f_rel * eph.ecc * eph.sqrt_a * cosE * Edot

    return pos, vel, dts, ddts


def _geo_to_ecef(pos: np.ndarray, vel: np.ndarray, angle: float, omge: float):
    """Rotate a BeiDou GEO position by -5 deg about X, then by the Earth rotation angle"""
    cx, sx = np.cos(-5.0 * D2R), np.sin(-5.0 * D2R)
    Rx = np.array([[1.0, 0.0, 0.0],
                   [0.0, cx, sx],
                   [0.0, -sx, cx]])
    cz, sz = np.cos(angle), np.sin(angle)
    Rz = np.array([[cz, sz, 0.0],
                   [-sz, cz, 0.0],
                   [0.0, 0.0, 1.0]])
    dRz = omge * np.array([[-sz, cz, 0.0],
                           [-cz, -sz, 0.0],
                           [0.0, 0.0, 0.0]])
    p = Rx @ pos
    return Rz @ p, Rz @ (Rx @ vel) + dRz @ p


def earth_rotation(vec: np.ndarray, angle: float) -> np.ndarray:
    """Rotate an ECEF vector about Z by the Earth rotation over the signal transit"""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([c * vec[0] + s * vec[1],
                     -s * vec[0] + c * vec[1],
                     vec[2]])


def _transit_pseudorange(obs: SatelliteObservation) -> Optional[float]:
    for p in obs.P:
        if p > 0.0:
            return float(p)
    return None


def compute_satellite_state(t_rx: GNSSTime, eph: Ephemeris,
                            pseudorange: Optional[float] = None,
                            rcv_pos: Optional[np.ndarray] = None) -> SatelliteState:
    """
    Satellite state for one observation

    Parameters
    ----------
    t_rx : GNSSTime
        Signal reception time
    eph : Ephemeris
        Ephemeris of the satellite
    pseudorange : float, optional
        Measured pseudorange (m), used for the transmission time
    rcv_pos : np.ndarray, optional
        Approximate receiver ECEF position for elevation and troposphere

    Returns
    -------
    SatelliteState
        State at transmission time expressed in the ECEF frame of reception
    """
    transit = pseudorange / CLIGHT if pseudorange else NOMINAL_TRANSIT
    t_tx = t_rx - transit
    for _ in range(TRANSMIT_ITERATIONS):
        dts = eph2clk(t_tx, eph)
        t_tx = t_rx - (transit + dts)

    pos, vel, dts, ddts = eph2pos(t_tx, eph)
    _, omge, _ = _system_constants(eph.sys)

    known_receiver = rcv_pos is not None and norm(rcv_pos) > MIN_RECEIVER_NORM
    tau = norm(pos - rcv_pos) / CLIGHT if known_receiver else transit
    pos = earth_rotation(pos, omge * tau)
    vel = earth_rotation(vel, omge * tau)

    stale = not is_ephemeris_valid(eph, t_tx)
    finite = bool(np.all(np.isfinite(pos)) and np.isfinite(dts))

    elevation, azimuth, trop = np.pi / 2, 0.0, 0.0
    if known_receiver and finite:
        llh = ecef2llh(rcv_pos)
        _, e = geodist(pos, rcv_pos)
        azimuth, elevation = satazel(llh, e)
        trop = hopfield_model(elevation, llh[2])

    if stale:
        logger.info(f"Stale ephemeris for {sat_id(eph.sys, eph.prn)}, "
                    f"age {ephemeris_age(eph, t_tx):.0f} s")

    return SatelliteState(
        sys=eph.sys,
        prn=eph.prn,
        position=pos,
        velocity=vel,
        clock_bias=dts,
        clock_drift=ddts,
        elevation=elevation,
        azimuth=azimuth,
        trop_delay=trop,
        tgd=float(eph.tgd[0]),
        stale=stale,
        valid=finite and not stale and eph.health == 0,
    )


class SatellitePositionEngine:
    """
    Satellite states for every observation of an epoch

    Parameters
    ----------
    table : EphemerisTable
        Source of the current ephemeris per PRN. Read only.
    """

    def __init__(self, table: EphemerisTable):
        self.table = table

    def compute(self, epoch: EpochObservation,
                rcv_pos: Optional[np.ndarray] = None) -> Dict[SatKey, SatelliteState]:
        """
        Compute satellite states for all satellites observed in an epoch

        Satellites without any ephemeris are left out; stale or unhealthy
        ones are returned with ``valid=False``.
        """
        states = {}
        for obs in epoch:
            eph = self.table.get(obs.sys, obs.prn)
            if eph is None:
                logger.debug(f"No ephemeris for {sat_id(obs.sys, obs.prn)}")
                continue
            states[obs.key] = compute_satellite_state(
                epoch.time, eph, _transit_pseudorange(obs), rcv_pos)
        return states
