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

"""Single Point Positioning (SPP) core implementation"""

import logging
from typing import Dict, List, Mapping, Optional

import numpy as np
from numpy.linalg import norm

from ..coordinate.transforms import ecef2llh
from ..core.constants import CLIGHT, D2R, SYS_BDS, sat_id, sys_frequencies
from ..core.data_structures import (
    Combination, EpochObservation, SatelliteObservation, SatelliteState, SatKey, SppSolution
)
from ..core.linalg import weighted_least_squares
from ..satellite.satellite_position import MIN_RECEIVER_NORM, SatellitePositionEngine
from .combinations import compute_combinations, if_code
from .geometry import geodist, pdop, satazel
from .troposphere import hopfield_model

logger = logging.getLogger(__name__)

# Constants
MAXITR = 10          # max iterations
CONV_TOL = 1e-4      # position correction norm at convergence (m)
ERR_CODE = 0.3       # code noise at zenith (m)
GEOMETRY_PASSES = 2  # satellite states are re-evaluated at the first solution


def varerr(el: float) -> float:
    """Variance of the code observable for an elevation (rad)"""
    s_el = np.sin(el)
    if s_el <= 0:
        return 100.0
    return ERR_CODE ** 2 * (1.0 + 1.0 / s_el ** 2)


def code_observable(obs: SatelliteObservation, state: SatelliteState) -> float:
    """
    Code observable with its group-delay model term removed

    Dual-frequency observations use the ionosphere-free combination, whose
    broadcast clock reference needs a TGD term only for BeiDou (clock
    referenced to B3). Single-frequency code gets the TGD of frequency 1.
    """
    eph_tgd = state.tgd
    pr = if_code(obs)
    if obs.P[1] > 0.0:
        if obs.sys == SYS_BDS:
            f1, f2 = sys_frequencies(obs.sys)
            pr -= CLIGHT * eph_tgd * f1 * f1 / (f1 * f1 - f2 * f2)
        return pr
    return pr - CLIGHT * eph_tgd


class SinglePointEstimator:
    """
    Iterated weighted least-squares position, clock and velocity of one receiver

    The estimator keeps one receiver clock column per constellation. It
    starts with a single column and widens the design matrix the first time
    an epoch carries a second constellation; the widened layout is kept for
    the following epochs.

    Parameters
    ----------
    engine : SatellitePositionEngine
        Satellite state provider
    elevation_mask : float
        Elevation cut-off (rad)
    """

    def __init__(self, engine: SatellitePositionEngine, elevation_mask: float = 15.0 * D2R):
        self.engine = engine
        self.elevation_mask = elevation_mask
        self.clock_systems: List[int] = []

    def _widen_clock_columns(self, epoch: EpochObservation):
        for sys in epoch.systems:
            if sys not in self.clock_systems:
                if self.clock_systems:
                    logger.info(f"Adding clock column for system {sys}")
                self.clock_systems.append(sys)

    def estimate(self, epoch: EpochObservation,
                 prior: Optional[np.ndarray] = None,
                 previous: Optional[Mapping[SatKey, Combination]] = None
                 ) -> Optional[SppSolution]:
        """
        Perform single point positioning for one epoch

        Parameters:
        -----------
        epoch : EpochObservation
            Observations of the receiver
        prior : np.ndarray, optional
            Approximate ECEF position (m); the geocentre is used when absent
        previous : dict, optional
            GF/MW/IF records of the previous epoch for smoothing

        Returns:
        --------
        SppSolution or None
            None when fewer satellites than unknowns survive
        """
        if len(epoch) == 0:
            return None
        self._widen_clock_columns(epoch)

        x = np.zeros(3 + len(self.clock_systems))
        if prior is not None:
            x[:3] = prior
        rcv = x[:3].copy() if norm(x[:3]) > MIN_RECEIVER_NORM else None

        result, states = None, {}
        for _ in range(GEOMETRY_PASSES):
            states = self.engine.compute(epoch, rcv)
            result = self._least_squares(epoch, states, x)
            if result is None:
                logger.info(f"SPP: insufficient geometry at {epoch.time}")
                return None
            x = result[0]
            rcv = x[:3].copy()

        x, Q, used, H, sigma0 = result
        velocity, drift = self._velocity(epoch, states, x[:3], used)

        clock_bias = {sys: x[3 + i] for i, sys in enumerate(self.clock_systems)
                      if any(k[0] == sys for k in used)}

        solution = SppSolution(
            time=epoch.time,
            xyz=x[:3].copy(),
            blh=ecef2llh(x[:3]),
            clock_bias=clock_bias,
            velocity=velocity,
            clock_drift=drift,
            pdop=pdop(H),
            sigma0=sigma0,
            qr=Q[:3, :3],
            used=tuple(used),
            combinations=compute_combinations(epoch, previous),
            satellites=states,
        )
        logger.debug(f"SPP: {describe(solution)}")
        return solution

    def _least_squares(self, epoch: EpochObservation, states: Dict[SatKey, SatelliteState],
                       x0: np.ndarray):
        x = x0.copy()
        nx = len(x)
        for _ in range(MAXITR):
            pos = x[:3]
            known = norm(pos) > MIN_RECEIVER_NORM
            llh = ecef2llh(pos) if known else None

            H, v, var, used = [], [], [], []
            for obs in epoch:
                state = states.get(obs.key)
                if state is None or not state.valid or obs.P[0] <= 0.0:
                    continue

                r, e = geodist(state.position, pos)
                if r <= 0:
                    continue

                if known:
                    _, el = satazel(llh, e)
                    if el < self.elevation_mask:
                        continue
                    trop = hopfield_model(el, llh[2])
                else:
                    el = np.pi / 2
                    trop = 0.0

                col = self.clock_systems.index(obs.sys)
                res = code_observable(obs, state) - (r + x[3 + col] - CLIGHT * state.clock_bias + trop)

                row = np.zeros(nx)
                row[:3] = -e
                row[3 + col] = 1.0
                H.append(row)
                v.append(res)
                var.append(varerr(el))
                used.append(obs.key)

            H = np.array(H).reshape(-1, nx)
            active = [True] * 3 + [bool(np.any(H[:, 3 + i] != 0.0)) for i in range(nx - 3)]
            active_idx = np.where(active)[0]
            if len(v) < len(active_idx):
                return None

            v = np.array(v)
            W = np.diag(1.0 / np.array(var))
            Hr = H[:, active_idx]
            dx_r, Q = weighted_least_squares(Hr, v, W)
            if dx_r is None:
                return None

            dx = np.zeros(nx)
            dx[active_idx] = dx_r
            x += dx

            if norm(dx[:3]) < CONV_TOL:
                break
        else:
            logger.debug(f"SPP not converged after {MAXITR} iterations")

        post = v - Hr @ dx_r
        dof = len(v) - len(active_idx)
        sigma0 = float(np.sqrt(post @ W @ post / dof)) if dof > 0 else 0.0
        Q_full = np.eye(nx)
        Q_full[np.ix_(active_idx, active_idx)] = Q
        return x, Q_full, used, Hr, sigma0

    def _velocity(self, epoch: EpochObservation, states: Dict[SatKey, SatelliteState],
                  pos: np.ndarray, used: List[SatKey]):
        """Receiver velocity and clock drift from first-frequency Doppler"""
        H, v = [], []
        for key in used:
            obs = epoch[epoch.find(*key)]
            state = states.get(key)
            if state is None or obs.D[0] == 0.0:
                continue
            lam1 = CLIGHT / sys_frequencies(obs.sys)[0]
            _, e = geodist(state.position, pos)
            rate = -lam1 * obs.D[0]
            H.append(np.concatenate([-e, [1.0]]))
            v.append(rate - (e @ state.velocity - CLIGHT * state.clock_drift))

        if len(v) < 4:
            return None, 0.0
        H = np.array(H)
        dx, _ = weighted_least_squares(H, np.array(v), np.eye(len(v)))
        if dx is None:
            return None, 0.0
        return dx[:3], float(dx[3])


def describe(solution: SppSolution) -> str:
    """One-line summary used in log output"""
    sats = ' '.join(sat_id(*k) for k in solution.used)
    return (f"{solution.time} xyz={solution.xyz.round(3).tolist()} "
            f"pdop={solution.pdop:.2f} sats=[{sats}]")
